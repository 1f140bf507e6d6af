# services/blocks.py
from datetime import date

from flask import current_app

from ..extensions import db
from ..errors import BlockNotCancellableError, InvalidRequestError, NotFoundError
from ..models import Block, BlockEstado, Rotativo, RotativoEstado
from ..rules.configs import BloqueExclusivoConfig
from . import audit, balance, notifications, waiting_list
from .rule_configs import RuleConfigStore


def _bloque_config() -> BloqueExclusivoConfig:
    override = RuleConfigStore().get("BLOQUE_EXCLUSIVO")
    return BloqueExclusivoConfig.decode(override.value if override else None)


def cancel_block(block_id: str, actor_id: str, today: date | None = None):
    """Libera un bloque asignado que todavía no empezó y promueve las listas de sus eventos."""
    block = db.session.get(Block, block_id)
    if block is None:
        raise NotFoundError("Bloque", block_id)
    if block.assigned_to_id is None:
        raise InvalidRequestError("El bloque no está asignado")

    today = today or date.today()
    if block.estado in (BlockEstado.en_curso, BlockEstado.completado):
        raise BlockNotCancellableError("El bloque ya está en curso y no puede cancelarse")
    if block.start_date <= today and not _bloque_config().permite_cancel:
        raise BlockNotCancellableError("El bloque ya comenzó y no puede cancelarse")

    user_id = block.assigned_to_id
    liberados = []
    for event in block.events:
        rotativo = Rotativo.query.filter_by(user_id=user_id, event_id=event.id).first()
        if rotativo is None or rotativo.estado in (RotativoEstado.cancelado, RotativoEstado.rechazado):
            continue
        if rotativo.estado == RotativoEstado.aprobado:
            liberados.append(event.id)
        elif rotativo.estado == RotativoEstado.en_espera:
            waiting_list.remove_from_waiting_list(user_id, event.id, actor_id)
        rotativo.estado = RotativoEstado.cancelado
        rotativo.motivo = "Bloque cancelado"

    block.assigned_to_id = None
    block.estado = BlockEstado.disponible
    db.session.flush()

    balance.recalculate_balance(user_id, block.season_id, actor_id)
    promociones = [
        waiting_list.promote_from_waiting_list(event_id, actor_id=actor_id)
        for event_id in liberados
    ]

    notifications.notify_user(
        user_id, notifications.BLOQUE_CANCELADO, "Bloque cancelado",
        f"Se canceló tu bloque {block.name}.",
        {"blockId": block.id},
    )
    audit.record_audit_event(
        audit.BLOQUE_CANCELADO, "Block", block.id, actor_id,
        details={"eventosLiberados": liberados}, target_user_id=user_id,
    )
    current_app.logger.info("Bloque %s cancelado (%s eventos liberados)", block.id, len(liberados))
    return block, promociones
