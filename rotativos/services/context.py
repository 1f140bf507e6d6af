# services/context.py
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError
from ..models import (
    Event,
    Rotativo,
    RotativoEstado,
    RotativoTipo,
    User,
    UserRole,
    UserSeasonBalance,
    WaitingListEntry,
)
from ..rules.types import EventData, SeasonData, UserBalanceSnapshot, ValidationContext
from . import cupos


def count_approved(event_id: str) -> int:
    return Rotativo.query.filter_by(event_id=event_id, estado=RotativoEstado.aprobado).count()


def count_members() -> int:
    """Integrantes del grupo; los administradores no entran en los promedios."""
    return User.query.filter_by(role=UserRole.integrante).count()


def balance_snapshot(balance: UserSeasonBalance | None) -> UserBalanceSnapshot:
    if balance is None:
        return UserBalanceSnapshot(
            max_proyectado=current_app.config.get("DEFAULT_MAX_PROYECTADO", 50),
        )
    return UserBalanceSnapshot(
        rotativos_tomados=balance.rotativos_tomados,
        rotativos_obligatorios=balance.rotativos_obligatorios,
        rotativos_por_licencia=balance.rotativos_por_licencia,
        max_proyectado=balance.max_proyectado,
        max_ajustado_manual=balance.max_ajustado_manual,
        fines_de_semana_mes=dict(balance.fines_de_semana_mes or {}),
        bloque_usado=balance.bloque_usado,
        fecha_ingreso=balance.fecha_ingreso,
    )


def build_validation_context(user_id: str, event_id: str,
                             request_type: RotativoTipo = RotativoTipo.voluntario,
                             request_date: datetime | None = None) -> ValidationContext:
    """Arma la foto del estado actual que necesitan las reglas para decidir."""
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Evento", event_id)

    balance = UserSeasonBalance.query.filter_by(
        user_id=user_id, season_id=event.season_id
    ).first()

    total_integrantes = count_members()
    total_aprobados = (
        Rotativo.query.join(Event, Rotativo.event_id == Event.id)
        .filter(Event.season_id == event.season_id, Rotativo.estado == RotativoEstado.aprobado)
        .count()
    )
    promedio = total_aprobados / total_integrantes if total_integrantes else 0.0

    waiting_list_length = WaitingListEntry.query.filter_by(event_id=event.id).count()

    return ValidationContext(
        user_id=user_id,
        event_id=event.id,
        season_id=event.season_id,
        request_type=request_type,
        request_date=request_date or datetime.now(),
        event_date=event.date,
        event_type=cupos.event_type_key(event),
        evento_tipo=event.evento_tipo,
        is_weekend=event.is_weekend,
        is_part_of_block=event.block_id is not None,
        block_id=event.block_id,
        user_balance=balance_snapshot(balance),
        event_data=EventData(
            current_approved=count_approved(event.id),
            cupo_total=cupos.effective_cupo(event),
            waiting_list_length=waiting_list_length,
        ),
        season_data=SeasonData(
            working_days=event.season.working_days,
            total_integrantes=total_integrantes,
            promedio_rotativos=promedio,
        ),
    )
