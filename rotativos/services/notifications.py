# services/notifications.py
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Notification, User, UserRole

# Tipos de notificación
LISTA_ESPERA_CUPO = "LISTA_ESPERA_CUPO"
LISTA_ESPERA_PENDIENTE = "LISTA_ESPERA_PENDIENTE"
SOLICITUD_APROBADA = "SOLICITUD_APROBADA"
SOLICITUD_PENDIENTE = "SOLICITUD_PENDIENTE"
SOLICITUD_RECHAZADA = "SOLICITUD_RECHAZADA"
ROTATIVO_OBLIGATORIO = "ROTATIVO_OBLIGATORIO"
ALERTA_CERCANIA = "ALERTA_CERCANIA"
BLOQUE_CANCELADO = "BLOQUE_CANCELADO"
EQUIDAD_BAJO_PROMEDIO = "EQUIDAD_BAJO_PROMEDIO"
EVENTOS_SIN_CUBRIR = "EVENTOS_SIN_CUBRIR"


def notify_user(user_id: str, type: str, title: str, message: str, data: dict | None = None) -> bool:
    """Registra una notificación para el integrante. Nunca interrumpe la operación que la origina."""
    try:
        with db.session.begin_nested():
            db.session.add(Notification(
                user_id=user_id, type=type, title=title, message=message, data=data,
            ))
    except SQLAlchemyError as exc:
        current_app.logger.error(
            "No se pudo notificar a %s (%s): %s", user_id, type, exc, exc_info=True
        )
        return False
    return True


def notify_admins(type: str, title: str, message: str, data: dict | None = None) -> int:
    try:
        admin_ids = [
            admin_id for (admin_id,) in
            db.session.query(User.id).filter(User.role == UserRole.admin).all()
        ]
        with db.session.begin_nested():
            db.session.add_all([
                Notification(user_id=admin_id, type=type, title=title, message=message, data=data)
                for admin_id in admin_ids
            ])
    except SQLAlchemyError as exc:
        current_app.logger.error(
            "No se pudo notificar a los administradores (%s): %s", type, exc, exc_info=True
        )
        return 0
    return len(admin_ids)


def get_user_notifications(user_id: str, unread_only: bool = False, limit: int = 50):
    query = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter_by(read=False)
    return query.order_by(Notification.created_at.desc()).limit(limit).all()
