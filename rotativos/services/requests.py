# services/requests.py
"""
Ciclo de vida de una solicitud de rotativo.

La validación decide la acción (aprobar, pendiente, lista de espera o rechazo);
este módulo la aplica sobre el rotativo, el balance, la lista de espera y los
bloques. Las funciones agregan y hacen flush; el commit queda en las rutas.
"""
from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import InvalidRequestError, NotFoundError
from ..models import (
    BlockEstado,
    Event,
    Rotativo,
    RotativoEstado,
    RotativoTipo,
)
from ..rules import (
    ALERT_RULE_ID,
    CUPO_RULE_ID,
    PROMOTION_EXEMPT_RULES,
    SuggestedAction,
    ValidationSummary,
)
from ..rules.implementations.alerta_cercania import EXCESO, LIMITE
from . import audit, balance, cupos, notifications, waiting_list
from .context import build_validation_context, count_approved
from .validation import get_engine

ACTIVE_ROTATIVO_STATES = (
    RotativoEstado.pendiente,
    RotativoEstado.aprobado,
    RotativoEstado.en_espera,
    RotativoEstado.asignado,
)


@dataclass
class RequestOutcome:
    action: SuggestedAction
    summary: ValidationSummary
    rotativo: Rotativo | None = None
    position: int | None = None
    message: str = ""

    def as_dict(self) -> dict:
        return {
            "action": self.action.value,
            "rotativoId": self.rotativo.id if self.rotativo else None,
            "estado": self.rotativo.estado.value if self.rotativo else None,
            "position": self.position,
            "message": self.message,
            "validation": self.summary.as_dict(),
        }


def _get_rotativo(rotativo_id: str) -> Rotativo:
    rotativo = db.session.get(Rotativo, rotativo_id)
    if rotativo is None:
        raise NotFoundError("Rotativo", rotativo_id)
    return rotativo


def _review_reason(summary: ValidationSummary) -> str | None:
    razones = [
        f"{result.rule_name}: {result.message}"
        for result in summary.failed()
        if result.suggested_action == SuggestedAction.PENDING_ADMIN
    ]
    return "; ".join(razones) or None


def _rejection_reason(summary: ValidationSummary) -> str:
    if summary.blocking_rule:
        result = summary.result_for(summary.blocking_rule)
        if result is not None:
            return result.message
    return "; ".join(result.message for result in summary.failed()) or "Solicitud rechazada"


def _store_rotativo(user_id: str, event_id: str, request_type: RotativoTipo,
                    estado: RotativoEstado, summary: ValidationSummary,
                    motivo_inicial: str | None = None) -> Rotativo:
    # Un rotativo cancelado o rechazado del mismo evento se reutiliza
    rotativo = Rotativo.query.filter_by(user_id=user_id, event_id=event_id).first()
    if rotativo is None:
        rotativo = Rotativo(user_id=user_id, event_id=event_id)
        db.session.add(rotativo)
    rotativo.tipo = request_type
    rotativo.estado = estado
    rotativo.motivo_inicial = motivo_inicial
    rotativo.motivo = None
    rotativo.aprobado_por = None
    rotativo.validacion = summary.as_dict()
    db.session.flush()
    return rotativo


def _balance_changes(rotativo: Rotativo) -> dict:
    event = rotativo.event
    return {
        "increment_rotativos": rotativo.tipo != RotativoTipo.obligatorio,
        "increment_obligatorios": rotativo.tipo == RotativoTipo.obligatorio,
        "is_weekend": rotativo.estado == RotativoEstado.aprobado and event.is_weekend,
        "event_date": event.date,
    }


def _claim_block(rotativo: Rotativo) -> None:
    block = rotativo.event.block
    if block is None or block.assigned_to_id is not None:
        return
    if block.estado not in (BlockEstado.disponible, BlockEstado.cancelado):
        return
    block.assigned_to_id = rotativo.user_id
    block.estado = BlockEstado.aprobado
    user_balance = balance.get_user_balance(rotativo.user_id, block.season_id)
    if user_balance is not None:
        user_balance.bloque_usado = True
    db.session.flush()


def _apply_approval(rotativo: Rotativo) -> None:
    balance.update_user_balance(
        rotativo.user_id, rotativo.event.season_id, **_balance_changes(rotativo)
    )
    _claim_block(rotativo)


def _notify_alert(user_id: str, event: Event, summary: ValidationSummary) -> None:
    if not current_app.config.get("ALERTA_NOTIFICAR", True):
        return
    alerta = summary.result_for(ALERT_RULE_ID)
    if alerta is None:
        return
    nivel = alerta.details.get("nivelAlerta")
    if nivel not in (LIMITE, EXCESO):
        return
    data = {"eventId": event.id, "userId": user_id, **alerta.details}
    notifications.notify_user(
        user_id, notifications.ALERTA_CERCANIA, "Cerca de tu máximo anual", alerta.message, data,
    )
    notifications.notify_admins(
        notifications.ALERTA_CERCANIA, "Integrante cerca de su máximo", alerta.message, data,
    )


# --------- Creación ---------
def create_request(user_id: str, event_id: str,
                   request_type: RotativoTipo = RotativoTipo.voluntario,
                   request_date: datetime | None = None) -> RequestOutcome:
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Evento", event_id)

    existing = Rotativo.query.filter_by(user_id=user_id, event_id=event_id).first()
    if existing is not None and existing.estado in ACTIVE_ROTATIVO_STATES:
        raise InvalidRequestError("Ya existe una solicitud activa para este evento")

    engine = get_engine()
    context = build_validation_context(user_id, event_id, request_type, request_date)
    summary = engine.validate_request(context)

    sin_cupo = (
        not summary.can_proceed
        and summary.blocking_rule == CUPO_RULE_ID
        and request_type == RotativoTipo.voluntario
    )
    if sin_cupo:
        return _enqueue_full(user_id, event, request_type, engine.validate_request(
            context, exclude=PROMOTION_EXEMPT_RULES
        ), summary)

    if not summary.can_proceed or summary.suggested_action == SuggestedAction.REJECT:
        return _rejected(user_id, event, summary)

    if summary.suggested_action == SuggestedAction.WAITING_LIST:
        return _enqueue(user_id, event, request_type, summary)

    if summary.suggested_action == SuggestedAction.PENDING_ADMIN:
        motivo = _review_reason(summary)
        rotativo = _store_rotativo(
            user_id, event_id, request_type, RotativoEstado.pendiente, summary, motivo_inicial=motivo
        )
        notifications.notify_user(
            user_id, notifications.SOLICITUD_PENDIENTE, "Solicitud pendiente",
            f"Tu solicitud para {event.title} requiere aprobación: {motivo}",
            {"eventId": event_id, "rotativoId": rotativo.id},
        )
        notifications.notify_admins(
            notifications.SOLICITUD_PENDIENTE, "Solicitud pendiente de aprobación",
            f"Solicitud para {event.title} pendiente: {motivo}",
            {"eventId": event_id, "rotativoId": rotativo.id, "userId": user_id},
        )
        outcome = RequestOutcome(SuggestedAction.PENDING_ADMIN, summary, rotativo, message=motivo or "")
    else:
        rotativo = _store_rotativo(user_id, event_id, request_type, RotativoEstado.aprobado, summary)
        _apply_approval(rotativo)
        outcome = RequestOutcome(SuggestedAction.APPROVE, summary, rotativo, message="Rotativo aprobado")

    _notify_alert(user_id, event, summary)
    audit.record_audit_event(
        audit.ROTATIVO_CREADO, "Rotativo", rotativo.id, user_id,
        details={"eventId": event_id, "estado": rotativo.estado.value, "tipo": request_type.value},
        target_user_id=user_id,
    )
    current_app.logger.info(
        "Solicitud de %s para %s: %s", user_id, event_id, rotativo.estado.value
    )
    return outcome


def _rejected(user_id: str, event: Event, summary: ValidationSummary) -> RequestOutcome:
    motivo = _rejection_reason(summary)
    current_app.logger.info("Solicitud de %s para %s rechazada: %s", user_id, event.id, motivo)
    return RequestOutcome(SuggestedAction.REJECT, summary, message=motivo)


def _enqueue(user_id: str, event: Event, request_type: RotativoTipo,
             summary: ValidationSummary, motivo_inicial: str | None = None) -> RequestOutcome:
    rotativo = _store_rotativo(
        user_id, event.id, request_type, RotativoEstado.en_espera, summary, motivo_inicial=motivo_inicial
    )
    entry = waiting_list.add_to_waiting_list(user_id, event.id)
    audit.record_audit_event(
        audit.ROTATIVO_CREADO, "Rotativo", rotativo.id, user_id,
        details={"eventId": event.id, "estado": rotativo.estado.value, "position": entry.position},
        target_user_id=user_id,
    )
    return RequestOutcome(
        SuggestedAction.WAITING_LIST, summary, rotativo,
        position=entry.position,
        message=f"Cupo lleno: quedaste en la posición {entry.position} de la lista de espera",
    )


def _enqueue_full(user_id: str, event: Event, request_type: RotativoTipo,
                  rest: ValidationSummary, summary: ValidationSummary) -> RequestOutcome:
    """Evento sin cupo: se encola si el resto de las reglas lo permite."""
    if not rest.can_proceed or rest.suggested_action == SuggestedAction.REJECT:
        return _rejected(user_id, event, rest)
    motivo_inicial = None
    if rest.suggested_action == SuggestedAction.PENDING_ADMIN:
        motivo_inicial = _review_reason(rest)
    return _enqueue(user_id, event, request_type, summary, motivo_inicial=motivo_inicial)


# --------- Acciones de administración ---------
def approve_request(rotativo_id: str, actor_id: str) -> Rotativo:
    rotativo = _get_rotativo(rotativo_id)
    event = rotativo.event

    if rotativo.estado == RotativoEstado.en_espera:
        if count_approved(event.id) >= cupos.effective_cupo(event):
            # Sin cupo: queda marcado para aprobarse al ser promovido
            rotativo.aprobado_por = actor_id
            rotativo.motivo = "Preaprobado por administración"
            db.session.flush()
            audit.record_audit_event(
                audit.ROTATIVO_APROBADO, "Rotativo", rotativo.id, actor_id,
                details={"preaprobado": True}, target_user_id=rotativo.user_id,
            )
            return rotativo
        waiting_list.remove_from_waiting_list(rotativo.user_id, event.id, actor_id)
    elif rotativo.estado != RotativoEstado.pendiente:
        raise InvalidRequestError(
            f"No se puede aprobar un rotativo en estado {rotativo.estado.value}"
        )

    rotativo.estado = RotativoEstado.aprobado
    rotativo.aprobado_por = actor_id
    db.session.flush()
    _apply_approval(rotativo)

    notifications.notify_user(
        rotativo.user_id, notifications.SOLICITUD_APROBADA, "Solicitud aprobada",
        f"Tu rotativo para {event.title} fue aprobado.",
        {"eventId": event.id, "rotativoId": rotativo.id},
    )
    audit.record_audit_event(
        audit.ROTATIVO_APROBADO, "Rotativo", rotativo.id, actor_id,
        target_user_id=rotativo.user_id,
    )
    return rotativo


def reject_request(rotativo_id: str, actor_id: str, motivo: str | None = None) -> Rotativo:
    rotativo = _get_rotativo(rotativo_id)
    if rotativo.estado not in (RotativoEstado.pendiente, RotativoEstado.en_espera):
        raise InvalidRequestError(
            f"No se puede rechazar un rotativo en estado {rotativo.estado.value}"
        )
    if rotativo.estado == RotativoEstado.en_espera:
        waiting_list.remove_from_waiting_list(rotativo.user_id, rotativo.event_id, actor_id)

    rotativo.estado = RotativoEstado.rechazado
    rotativo.motivo = motivo
    db.session.flush()

    notifications.notify_user(
        rotativo.user_id, notifications.SOLICITUD_RECHAZADA, "Solicitud rechazada",
        f"Tu solicitud para {rotativo.event.title} fue rechazada." + (f" Motivo: {motivo}" if motivo else ""),
        {"eventId": rotativo.event_id, "rotativoId": rotativo.id},
    )
    audit.record_audit_event(
        audit.ROTATIVO_RECHAZADO, "Rotativo", rotativo.id, actor_id,
        details={"motivo": motivo}, target_user_id=rotativo.user_id,
    )
    return rotativo


def cancel_request(rotativo_id: str, actor_id: str):
    """Cancela el rotativo; si liberó un cupo, promueve al primero de la lista."""
    rotativo = _get_rotativo(rotativo_id)
    estado = rotativo.estado
    if estado not in ACTIVE_ROTATIVO_STATES:
        raise InvalidRequestError(
            f"No se puede cancelar un rotativo en estado {estado.value}"
        )

    promotion = None
    if estado in (RotativoEstado.aprobado, RotativoEstado.asignado):
        balance.decrement_user_balance(
            rotativo.user_id, rotativo.event.season_id, **_balance_changes(rotativo)
        )
    elif estado == RotativoEstado.en_espera:
        waiting_list.remove_from_waiting_list(rotativo.user_id, rotativo.event_id, actor_id)

    rotativo.estado = RotativoEstado.cancelado
    db.session.flush()
    audit.record_audit_event(
        audit.ROTATIVO_CANCELADO, "Rotativo", rotativo.id, actor_id,
        details={"estadoAnterior": estado.value}, target_user_id=rotativo.user_id,
    )

    if estado == RotativoEstado.aprobado:
        promotion = waiting_list.promote_from_waiting_list(rotativo.event_id, actor_id=actor_id)
    return rotativo, promotion


def assign_mandatory(user_id: str, event_id: str, actor_id: str) -> Rotativo:
    """Asignación obligatoria hecha por administración; cuenta como obligatorio."""
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Evento", event_id)

    existing = Rotativo.query.filter_by(user_id=user_id, event_id=event_id).first()
    if existing is not None and existing.estado in ACTIVE_ROTATIVO_STATES:
        raise InvalidRequestError("El integrante ya tiene un rotativo activo en este evento")

    rotativo = existing
    if rotativo is None:
        rotativo = Rotativo(user_id=user_id, event_id=event_id)
        db.session.add(rotativo)
    rotativo.tipo = RotativoTipo.obligatorio
    rotativo.estado = RotativoEstado.asignado
    rotativo.aprobado_por = actor_id
    rotativo.motivo_inicial = None
    rotativo.motivo = "Asignación obligatoria"
    db.session.flush()

    balance.update_user_balance(user_id, event.season_id, **_balance_changes(rotativo))

    notifications.notify_user(
        user_id, notifications.ROTATIVO_OBLIGATORIO, "Rotativo asignado",
        f"Se te asignó un rotativo obligatorio para {event.title}.",
        {"eventId": event_id, "rotativoId": rotativo.id},
    )
    audit.record_audit_event(
        audit.ROTATIVO_OBLIGATORIO_ASIGNADO, "Rotativo", rotativo.id, actor_id,
        details={"eventId": event_id}, target_user_id=user_id,
    )
    return rotativo
