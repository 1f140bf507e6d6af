# services/balance.py
import math
from datetime import date, datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundError
from ..models import (
    ACTIVE_BLOCK_STATES,
    Block,
    Event,
    License,
    Rotativo,
    RotativoEstado,
    RotativoTipo,
    User,
    UserRole,
    UserSeasonBalance,
)
from . import audit, cupos


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _month_key(event_date: date | datetime) -> str:
    return event_date.strftime("%Y-%m")


def calculate_dynamic_max(season_id: str) -> int:
    """Suma de los cupos efectivos de los eventos de la temporada ÷ integrantes, redondeado."""
    total_integrantes = User.query.count()
    if total_integrantes == 0:
        return 0
    total_cupos = sum(
        cupos.effective_cupo(event)
        for event in Event.query.filter_by(season_id=season_id).all()
    )
    return _round_half_up(total_cupos / total_integrantes)


def _locked_balance(user_id: str, season_id: str) -> UserSeasonBalance | None:
    # FOR UPDATE serializa incrementos concurrentes sobre el mismo (user, season)
    return (
        UserSeasonBalance.query.filter_by(user_id=user_id, season_id=season_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_user_balance(user_id: str, season_id: str) -> UserSeasonBalance | None:
    return UserSeasonBalance.query.filter_by(user_id=user_id, season_id=season_id).first()


def get_all_balances(season_id: str):
    return (
        UserSeasonBalance.query.filter_by(season_id=season_id)
        .order_by(UserSeasonBalance.rotativos_tomados.desc())
        .all()
    )


def update_user_balance(user_id: str, season_id: str, *,
                        increment_rotativos: bool = False,
                        increment_obligatorios: bool = False,
                        is_weekend: bool = False,
                        event_date: date | datetime | None = None) -> UserSeasonBalance:
    balance = _locked_balance(user_id, season_id)

    if balance is None:
        balance = UserSeasonBalance(
            user_id=user_id,
            season_id=season_id,
            rotativos_tomados=0,
            rotativos_obligatorios=0,
            rotativos_por_licencia=0,
            max_proyectado=calculate_dynamic_max(season_id),
            fines_de_semana_mes={},
            bloque_usado=False,
        )
        db.session.add(balance)

    if increment_rotativos:
        balance.rotativos_tomados += 1
    if increment_obligatorios:
        balance.rotativos_obligatorios += 1
    if is_weekend and event_date is not None:
        fines = dict(balance.fines_de_semana_mes or {})
        mes = _month_key(event_date)
        fines[mes] = fines.get(mes, 0) + 1
        balance.fines_de_semana_mes = fines

    db.session.flush()
    return balance


def decrement_user_balance(user_id: str, season_id: str, *,
                           increment_rotativos: bool = False,
                           increment_obligatorios: bool = False,
                           is_weekend: bool = False,
                           event_date: date | datetime | None = None) -> UserSeasonBalance | None:
    """Revierte lo sumado por ``update_user_balance``; los contadores no bajan de cero."""
    balance = _locked_balance(user_id, season_id)
    if balance is None:
        return None

    if increment_rotativos:
        balance.rotativos_tomados = max(0, balance.rotativos_tomados - 1)
    if increment_obligatorios:
        balance.rotativos_obligatorios = max(0, balance.rotativos_obligatorios - 1)
    if is_weekend and event_date is not None:
        fines = dict(balance.fines_de_semana_mes or {})
        mes = _month_key(event_date)
        if fines.get(mes, 0) > 0:
            fines[mes] -= 1
        balance.fines_de_semana_mes = fines

    db.session.flush()
    return balance


def recalculate_balance(user_id: str, season_id: str, actor_id: str | None = None) -> UserSeasonBalance:
    """Rearma el balance desde los rotativos, bloques y licencias registrados."""
    base = (
        Rotativo.query.join(Event, Rotativo.event_id == Event.id)
        .filter(Rotativo.user_id == user_id, Event.season_id == season_id)
    )

    rotativos_tomados = base.filter(
        Rotativo.estado == RotativoEstado.aprobado,
        Rotativo.tipo.in_([RotativoTipo.voluntario, RotativoTipo.cobertura]),
    ).count()

    rotativos_obligatorios = base.filter(
        Rotativo.estado.in_([RotativoEstado.aprobado, RotativoEstado.asignado]),
        Rotativo.tipo == RotativoTipo.obligatorio,
    ).count()

    fines = {}
    for rotativo in base.filter(Rotativo.estado == RotativoEstado.aprobado).all():
        if rotativo.event.is_weekend:
            mes = rotativo.event.month_key
            fines[mes] = fines.get(mes, 0) + 1

    bloque_usado = (
        Block.query.filter(
            Block.assigned_to_id == user_id,
            Block.season_id == season_id,
            Block.estado.in_(ACTIVE_BLOCK_STATES),
        ).count() > 0
    )

    por_licencia = (
        db.session.query(func.coalesce(func.sum(License.rotativos_calculados), 0))
        .filter(License.user_id == user_id, License.season_id == season_id)
        .scalar()
    )

    balance = _locked_balance(user_id, season_id)
    if balance is None:
        balance = UserSeasonBalance(user_id=user_id, season_id=season_id)
        db.session.add(balance)

    balance.rotativos_tomados = rotativos_tomados
    balance.rotativos_obligatorios = rotativos_obligatorios
    balance.rotativos_por_licencia = int(por_licencia)
    balance.fines_de_semana_mes = fines
    balance.bloque_usado = bloque_usado
    # El máximo de un integrante nuevo se fijó con el promedio del grupo al ingresar
    if balance.fecha_ingreso is None or not balance.max_proyectado:
        balance.max_proyectado = calculate_dynamic_max(season_id)

    db.session.flush()
    audit.record_audit_event(
        audit.BALANCE_RECALCULADO, "UserSeasonBalance", balance.id, actor_id,
        details={
            "rotativosTomados": rotativos_tomados,
            "rotativosObligatorios": rotativos_obligatorios,
            "maxProyectado": balance.max_proyectado,
        },
        target_user_id=user_id,
    )
    current_app.logger.info(
        "Balance recalculado para %s en %s: %s/%s",
        user_id, season_id, balance.total, balance.max_efectivo,
    )
    return balance


def set_manual_max(user_id: str, season_id: str, max_ajustado: int | None,
                   actor_id: str | None = None) -> UserSeasonBalance:
    balance = _locked_balance(user_id, season_id)
    if balance is None:
        raise NotFoundError("Balance", f"{user_id}/{season_id}")
    anterior = balance.max_ajustado_manual
    balance.max_ajustado_manual = max_ajustado
    db.session.flush()
    audit.record_audit_event(
        audit.MAXIMO_AJUSTADO, "UserSeasonBalance", balance.id, actor_id,
        details={"anterior": anterior, "nuevo": max_ajustado},
        target_user_id=user_id,
    )
    return balance


def _others_approved(user_id: str, season_id: str):
    """Rotativos aprobados del resto de los integrantes en la temporada."""
    return (
        Rotativo.query.join(Event, Rotativo.event_id == Event.id)
        .join(User, Rotativo.user_id == User.id)
        .filter(
            Event.season_id == season_id,
            Rotativo.user_id != user_id,
            Rotativo.estado == RotativoEstado.aprobado,
            User.role == UserRole.integrante,
        )
    )


def _count_other_members(user_id: str) -> int:
    return User.query.filter(User.id != user_id, User.role == UserRole.integrante).count()


# --------- Licencias ---------
def calculate_license_credit(user_id: str, season_id: str, start_date: date, end_date: date) -> int:
    """Promedio de rotativos aprobados que tomó el resto durante la licencia, hacia abajo."""
    otros = _count_other_members(user_id)
    if otros == 0:
        return 0
    desde = datetime.combine(start_date, datetime.min.time())
    hasta = datetime.combine(end_date, datetime.max.time())
    tomados = (
        _others_approved(user_id, season_id)
        .filter(Event.date >= desde, Event.date <= hasta)
        .count()
    )
    return math.floor(tomados / otros)


def register_license(user_id: str, season_id: str, start_date: date, end_date: date,
                     description: str | None = None, actor_id: str | None = None) -> License:
    if end_date < start_date:
        raise ValueError("La licencia termina antes de empezar")

    credito = calculate_license_credit(user_id, season_id, start_date, end_date)
    license = License(
        user_id=user_id,
        season_id=season_id,
        start_date=start_date,
        end_date=end_date,
        rotativos_calculados=credito,
        description=description,
    )
    db.session.add(license)

    balance = _locked_balance(user_id, season_id)
    if balance is None:
        balance = update_user_balance(user_id, season_id)
    balance.rotativos_por_licencia += credito
    db.session.flush()

    audit.record_audit_event(
        audit.LICENCIA_REGISTRADA, "License", license.id, actor_id,
        details={"desde": start_date.isoformat(), "hasta": end_date.isoformat(), "rotativos": credito},
        target_user_id=user_id,
    )
    return license


# --------- Integrantes nuevos ---------
def register_new_member(user_id: str, season_id: str, fecha_ingreso: date) -> UserSeasonBalance:
    """El máximo de quien ingresa con la temporada empezada es el promedio del resto."""
    otros = _count_other_members(user_id)
    tomados = _others_approved(user_id, season_id).count()
    promedio = tomados / otros if otros else 0.0

    balance = _locked_balance(user_id, season_id)
    if balance is None:
        balance = UserSeasonBalance(
            user_id=user_id,
            season_id=season_id,
            rotativos_tomados=0,
            rotativos_obligatorios=0,
            rotativos_por_licencia=0,
            fines_de_semana_mes={},
            bloque_usado=False,
        )
        db.session.add(balance)
    balance.fecha_ingreso = fecha_ingreso
    balance.max_proyectado = _round_half_up(promedio)
    db.session.flush()
    return balance
