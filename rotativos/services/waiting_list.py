# services/waiting_list.py
import threading
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidRequestError, NotFoundError
from ..models import Event, Rotativo, RotativoEstado, RotativoTipo, WaitingListEntry
from ..rules import PROMOTION_EXEMPT_RULES, ValidationEngine
from . import audit, balance, cupos, notifications
from .context import build_validation_context, count_approved

# Pool fijo: eventos distintos pueden compartir lock, nunca crece
_LOCK_STRIPES = 64
_event_locks = tuple(threading.Lock() for _ in range(_LOCK_STRIPES))


def _event_lock(event_id: str) -> threading.Lock:
    return _event_locks[hash(event_id) % _LOCK_STRIPES]


def _lock_event(event_id: str) -> Event:
    # FOR UPDATE sobre el evento serializa encolados y promociones del mismo evento
    event = (
        Event.query.filter_by(id=event_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if event is None:
        raise NotFoundError("Evento", event_id)
    return event


@dataclass
class PromotionResult:
    promoted: bool
    estado: RotativoEstado | None = None
    user_id: str | None = None
    rotativo_id: str | None = None
    motivo: str | None = None

    def as_dict(self) -> dict:
        return {
            "promoted": self.promoted,
            "estado": self.estado.value if self.estado else None,
            "userId": self.user_id,
            "rotativoId": self.rotativo_id,
            "motivo": self.motivo,
        }


# --------- Consultas ---------
def get_waiting_list(event_id: str):
    return (
        WaitingListEntry.query.filter_by(event_id=event_id)
        .order_by(WaitingListEntry.position.asc())
        .all()
    )


def get_user_position(user_id: str, event_id: str) -> int | None:
    entry = WaitingListEntry.query.filter_by(user_id=user_id, event_id=event_id).first()
    return entry.position if entry else None


def get_user_waiting_entries(user_id: str, season_id: str):
    return (
        WaitingListEntry.query.join(Event, WaitingListEntry.event_id == Event.id)
        .filter(WaitingListEntry.user_id == user_id, WaitingListEntry.season_id == season_id)
        .order_by(Event.date.asc())
        .all()
    )


# --------- Encolar / retirar ---------
def add_to_waiting_list(user_id: str, event_id: str, actor_id: str | None = None) -> WaitingListEntry:
    """Agrega al integrante al final de la lista del evento."""
    with _event_lock(event_id):
        event = _lock_event(event_id)

        if WaitingListEntry.query.filter_by(user_id=user_id, event_id=event_id).first():
            raise InvalidRequestError("Ya estás en la lista de espera de este evento")

        last = (
            db.session.query(func.max(WaitingListEntry.position))
            .filter(WaitingListEntry.event_id == event_id)
            .scalar()
        )
        entry = WaitingListEntry(
            user_id=user_id,
            event_id=event_id,
            season_id=event.season_id,
            position=(last or 0) + 1,
        )
        db.session.add(entry)
        db.session.flush()

    audit.record_audit_event(
        audit.LISTA_ESPERA_AGREGADO, "WaitingListEntry", entry.id, actor_id or user_id,
        details={"eventId": event_id, "position": entry.position},
        target_user_id=user_id,
    )
    current_app.logger.info(
        "Integrante %s agregado a la lista de %s en posición %s", user_id, event_id, entry.position
    )
    return entry


def _remove_entry(entry: WaitingListEntry) -> bool:
    """Borra la entrada sólo si sigue en la lista y corre las posiciones siguientes."""
    event_id, position = entry.event_id, entry.position
    removed = (
        WaitingListEntry.query.filter_by(id=entry.id)
        .delete(synchronize_session="fetch")
    )
    if not removed:
        return False
    WaitingListEntry.query.filter(
        WaitingListEntry.event_id == event_id,
        WaitingListEntry.position > position,
    ).update(
        {WaitingListEntry.position: WaitingListEntry.position - 1},
        synchronize_session="fetch",
    )
    return True


def remove_from_waiting_list(user_id: str, event_id: str, actor_id: str | None = None) -> bool:
    with _event_lock(event_id):
        _lock_event(event_id)
        entry = WaitingListEntry.query.filter_by(user_id=user_id, event_id=event_id).first()
        if entry is None:
            return False
        entry_id, position = entry.id, entry.position
        if not _remove_entry(entry):
            return False

    audit.record_audit_event(
        audit.LISTA_ESPERA_RETIRADO, "WaitingListEntry", entry_id, actor_id or user_id,
        details={"eventId": event_id, "position": position},
        target_user_id=user_id,
    )
    return True


def purge_waiting_list(season_id: str, actor_id: str | None = None) -> int:
    """Cierre de temporada: borra todas las entradas sin promover a nadie."""
    count = WaitingListEntry.query.filter_by(season_id=season_id).delete(synchronize_session=False)
    audit.record_audit_event(
        audit.LISTA_ESPERA_PURGADA, "Season", season_id, actor_id,
        details={"eliminadas": count},
    )
    current_app.logger.info("Lista de espera de la temporada %s purgada (%s entradas)", season_id, count)
    return count


# --------- Promoción ---------
def _revalidate(rotativo: Rotativo, engine: ValidationEngine | None) -> list[str]:
    """Mensajes de las reglas que hoy fallan para el rotativo en espera."""
    if engine is None:
        from .validation import get_engine
        engine = get_engine()
    context = build_validation_context(
        rotativo.user_id, rotativo.event_id, rotativo.tipo, datetime.now()
    )
    summary = engine.validate_request(context, exclude=PROMOTION_EXEMPT_RULES)
    return [f"{result.rule_name}: {result.message}" for result in summary.failed()]


def _decide(rotativo: Rotativo, engine: ValidationEngine | None) -> tuple[RotativoEstado, str | None]:
    if rotativo.aprobado_por:
        return RotativoEstado.aprobado, "Preaprobado por administración"

    if rotativo.motivo_inicial:
        return RotativoEstado.pendiente, f"Requería aprobación al solicitarse: {rotativo.motivo_inicial}"

    try:
        fallas = _revalidate(rotativo, engine)
    except Exception as exc:
        current_app.logger.error(
            "Error revalidando el rotativo %s al promover", rotativo.id, exc_info=True
        )
        return RotativoEstado.pendiente, f"No se pudo revalidar la solicitud: {exc}"

    if fallas:
        return RotativoEstado.pendiente, "; ".join(fallas)
    return RotativoEstado.aprobado, None


def _next_head(event_id: str) -> tuple[WaitingListEntry | None, Rotativo | None]:
    """Primer turno vigente; descarta entradas cuyo rotativo ya salió de la espera."""
    while True:
        head = (
            WaitingListEntry.query.filter_by(event_id=event_id)
            .order_by(WaitingListEntry.position.asc())
            .first()
        )
        if head is None:
            return None, None
        rotativo = Rotativo.query.filter_by(user_id=head.user_id, event_id=event_id).first()
        if rotativo is None or rotativo.estado == RotativoEstado.en_espera:
            return head, rotativo
        current_app.logger.warning(
            "Entrada de %s en la lista de %s descartada: rotativo en estado %s",
            head.user_id, event_id, rotativo.estado.value,
        )
        _remove_entry(head)


def promote_from_waiting_list(event_id: str, engine: ValidationEngine | None = None,
                              actor_id: str | None = None) -> PromotionResult:
    """Promueve al primero de la lista si el evento tiene cupo libre."""
    with _event_lock(event_id):
        event = _lock_event(event_id)

        head, rotativo = _next_head(event_id)
        if head is None:
            return PromotionResult(promoted=False, motivo="La lista de espera está vacía")

        if count_approved(event_id) >= cupos.effective_cupo(event):
            return PromotionResult(promoted=False, motivo="El evento sigue sin cupo")

        # Otra transacción pudo haber tomado este turno
        user_id = head.user_id
        if not _remove_entry(head):
            current_app.logger.warning(
                "Turno de %s en %s ya promovido por otra transacción", user_id, event_id
            )
            return PromotionResult(promoted=False, motivo="El turno ya fue promovido")

        if rotativo is None:
            rotativo = Rotativo(
                user_id=user_id, event_id=event_id,
                tipo=RotativoTipo.voluntario, estado=RotativoEstado.en_espera,
            )
            db.session.add(rotativo)
            db.session.flush()

        estado, motivo = _decide(rotativo, engine)
        rotativo.estado = estado
        rotativo.motivo = motivo
        db.session.flush()

    if estado == RotativoEstado.aprobado:
        balance.update_user_balance(
            user_id, event.season_id,
            increment_rotativos=True,
            is_weekend=event.is_weekend,
            event_date=event.date,
        )
        notifications.notify_user(
            user_id, notifications.LISTA_ESPERA_CUPO,
            "Se liberó un cupo",
            f"Tu rotativo para {event.title} fue aprobado desde la lista de espera.",
            {"eventId": event_id, "rotativoId": rotativo.id},
        )
    else:
        notifications.notify_user(
            user_id, notifications.LISTA_ESPERA_PENDIENTE,
            "Se liberó un cupo",
            f"Tu solicitud para {event.title} salió de la lista de espera y espera aprobación.",
            {"eventId": event_id, "rotativoId": rotativo.id},
        )
        notifications.notify_admins(
            notifications.LISTA_ESPERA_PENDIENTE,
            "Solicitud promovida pendiente",
            f"Un rotativo para {event.title} salió de la lista de espera y requiere aprobación.",
            {
                "eventId": event_id,
                "rotativoId": rotativo.id,
                "userId": user_id,
                "motivoInicial": rotativo.motivo_inicial,
                "motivo": motivo,
            },
        )

    audit.record_audit_event(
        audit.LISTA_ESPERA_PROMOVIDO, "Rotativo", rotativo.id, actor_id,
        details={"eventId": event_id, "estado": estado.value, "motivo": motivo},
        target_user_id=user_id,
    )
    current_app.logger.info(
        "Promoción en %s: %s -> %s", event_id, user_id, estado.value
    )
    return PromotionResult(
        promoted=True,
        estado=estado,
        user_id=user_id,
        rotativo_id=rotativo.id,
        motivo=motivo,
    )
