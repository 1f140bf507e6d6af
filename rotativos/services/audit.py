# services/audit.py
from ..extensions import db
from ..models import AuditLog

# Acciones
LISTA_ESPERA_AGREGADO = "LISTA_ESPERA_AGREGADO"
LISTA_ESPERA_RETIRADO = "LISTA_ESPERA_RETIRADO"
LISTA_ESPERA_PROMOVIDO = "LISTA_ESPERA_PROMOVIDO"
LISTA_ESPERA_PURGADA = "LISTA_ESPERA_PURGADA"
ROTATIVO_CREADO = "ROTATIVO_CREADO"
ROTATIVO_APROBADO = "ROTATIVO_APROBADO"
ROTATIVO_RECHAZADO = "ROTATIVO_RECHAZADO"
ROTATIVO_CANCELADO = "ROTATIVO_CANCELADO"
ROTATIVO_OBLIGATORIO_ASIGNADO = "ROTATIVO_OBLIGATORIO_ASIGNADO"
BLOQUE_CANCELADO = "BLOQUE_CANCELADO"
BALANCE_RECALCULADO = "BALANCE_RECALCULADO"
MAXIMO_AJUSTADO = "MAXIMO_AJUSTADO"
LICENCIA_REGISTRADA = "LICENCIA_REGISTRADA"
REGLA_MODIFICADA = "REGLA_MODIFICADA"

SYSTEM_ACTOR = "system"


def record_audit_event(action: str, entity_type: str, entity_id: str, actor_id: str | None,
                       details: dict | None = None, target_user_id: str | None = None) -> AuditLog:
    log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=actor_id or SYSTEM_ACTOR,
        target_user_id=target_user_id,
        details=details,
    )
    db.session.add(log)
    return log


def get_entity_history(entity_type: str, entity_id: str):
    return (
        AuditLog.query.filter_by(entity_type=entity_type, entity_id=entity_id)
        .order_by(AuditLog.created_at.desc())
        .all()
    )
