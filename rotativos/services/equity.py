# services/equity.py
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from flask import current_app

from ..extensions import db
from ..errors import InvalidRequestError, NotFoundError
from ..models import (
    Event,
    Rotativo,
    RotativoEstado,
    RotativoTipo,
    Season,
    User,
    UserRole,
    UserSeasonBalance,
)
from ..rules.configs import CoberturaExternaConfig, RotacionObligatoriaConfig
from . import balance, cupos, notifications
from .balance import _round_half_up
from .rule_configs import RuleConfigStore

MENOS_ROTATIVOS = "MENOS_ROTATIVOS"
MAS_ROTATIVOS = "MAS_ROTATIVOS"
CRITERIOS = (MENOS_ROTATIVOS, MAS_ROTATIVOS)

# Estados que ocupan lugar en el evento al verificar la cobertura
COVERING_STATES = (RotativoEstado.aprobado, RotativoEstado.pendiente, RotativoEstado.asignado)


def _rule_config(key: str, config_class):
    override = RuleConfigStore().get(key)
    return config_class.decode(override.value if override else None)


@dataclass
class MemberTotals:
    user_id: str
    name: str
    total: int = 0
    rotativos_tomados: int = 0
    rotativos_obligatorios: int = 0
    rotativos_por_licencia: int = 0
    max_proyectado: int = 0
    diferencia_con_promedio: int = 0
    por_debajo_del_promedio: bool = False

    @classmethod
    def from_balance(cls, user: User, row: UserSeasonBalance | None, default_max: int):
        if row is None:
            return cls(user_id=user.id, name=user.alias or user.name, max_proyectado=default_max)
        return cls(
            user_id=user.id,
            name=user.alias or user.name,
            total=row.total,
            rotativos_tomados=row.rotativos_tomados,
            rotativos_obligatorios=row.rotativos_obligatorios,
            rotativos_por_licencia=row.rotativos_por_licencia,
            max_proyectado=row.max_efectivo,
        )

    def as_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "userName": self.name,
            "total": self.total,
            "rotativosTomados": self.rotativos_tomados,
            "rotativosObligatorios": self.rotativos_obligatorios,
            "rotativosPorLicencia": self.rotativos_por_licencia,
            "maxProyectado": self.max_proyectado,
            "diferenciaConPromedio": self.diferencia_con_promedio,
            "porDebajoDelPromedio": self.por_debajo_del_promedio,
        }


@dataclass
class CandidateList:
    event_id: str
    criterio: str
    promedio: float
    candidatos: list[MemberTotals] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "eventId": self.event_id,
            "criterio": self.criterio,
            "promedioGrupo": round(self.promedio, 1),
            "totalCandidatos": len(self.candidatos),
            "candidatos": [c.as_dict() for c in self.candidatos],
        }


@dataclass
class EquityReport:
    season_id: str
    umbral: int
    promedio: float = 0.0
    maximo: int = 0
    minimo: int = 0
    integrantes: list[MemberTotals] = field(default_factory=list)
    por_debajo: list[MemberTotals] = field(default_factory=list)
    por_encima: list[MemberTotals] = field(default_factory=list)

    @property
    def rango(self) -> int:
        return self.maximo - self.minimo

    def as_dict(self) -> dict:
        return {
            "seasonId": self.season_id,
            "umbral": self.umbral,
            "estadisticas": {
                "totalIntegrantes": len(self.integrantes),
                "promedio": round(self.promedio, 1),
                "maximo": self.maximo,
                "minimo": self.minimo,
                "rangoEquidad": self.rango,
            },
            "usuariosPorDebajo": [m.as_dict() for m in self.por_debajo],
            "usuariosPorEncima": [m.as_dict() for m in self.por_encima],
        }


@dataclass
class UncoveredEvent:
    event_id: str
    title: str
    date: datetime
    cupo_necesario: int
    cupo_actual: int

    @property
    def faltantes(self) -> int:
        return self.cupo_necesario - self.cupo_actual

    def as_dict(self) -> dict:
        return {
            "eventId": self.event_id,
            "title": self.title,
            "date": self.date.isoformat(),
            "cupoNecesario": self.cupo_necesario,
            "cupoActual": self.cupo_actual,
            "faltantes": self.faltantes,
        }


def _member_totals(season_id: str, exclude=()) -> list[MemberTotals]:
    members = User.query.filter(User.role == UserRole.integrante).all()
    rows = {
        row.user_id: row
        for row in UserSeasonBalance.query.filter_by(season_id=season_id).all()
    }
    default_max = balance.calculate_dynamic_max(season_id)
    return [
        MemberTotals.from_balance(user, rows.get(user.id), default_max)
        for user in members
        if user.id not in exclude
    ]


def _mark_against_average(members: list[MemberTotals]) -> float:
    if not members:
        return 0.0
    promedio = sum(m.total for m in members) / len(members)
    for member in members:
        member.diferencia_con_promedio = _round_half_up(promedio - member.total)
        member.por_debajo_del_promedio = member.total < promedio
    return promedio


# --------- Candidatos ---------
def rotation_candidates(event_id: str, criterio: str | None = None,
                        tipo: RotativoTipo = RotativoTipo.obligatorio) -> CandidateList:
    """Integrantes que pueden cubrir el evento, ordenados según el criterio de la regla.

    Sin criterio explícito se usa el configurado: ROTACION_OBLIGATORIA para
    asignaciones obligatorias, COBERTURA_EXTERNA para coberturas. Quedan fuera
    quienes ya tienen un rotativo vigente en el evento.
    """
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Evento", event_id)

    if criterio is None:
        if tipo == RotativoTipo.cobertura:
            criterio = _rule_config("COBERTURA_EXTERNA", CoberturaExternaConfig).criterio
        else:
            criterio = _rule_config("ROTACION_OBLIGATORIA", RotacionObligatoriaConfig).criterio
    criterio = str(criterio).upper()
    if criterio not in CRITERIOS:
        raise InvalidRequestError(f"Criterio inválido: {criterio}")

    ocupados = {
        user_id for (user_id,) in
        db.session.query(Rotativo.user_id).filter(
            Rotativo.event_id == event_id,
            Rotativo.estado.notin_([RotativoEstado.rechazado, RotativoEstado.cancelado]),
        ).all()
    }
    candidatos = _member_totals(event.season_id, exclude=ocupados)
    promedio = _mark_against_average(candidatos)

    if criterio == MAS_ROTATIVOS:
        candidatos.sort(key=lambda m: (-m.total, m.name))
    else:
        candidatos.sort(key=lambda m: (m.total, m.name))

    return CandidateList(
        event_id=event_id, criterio=criterio, promedio=promedio, candidatos=candidatos,
    )


# --------- Equidad ---------
def equity_report(season_id: str, umbral: int = 5) -> EquityReport:
    """Integrantes que se alejan del promedio del grupo en al menos `umbral` rotativos."""
    if db.session.get(Season, season_id) is None:
        raise NotFoundError("Temporada", season_id)
    integrantes = _member_totals(season_id)
    report = EquityReport(season_id=season_id, umbral=umbral, integrantes=integrantes)
    if not integrantes:
        return report

    report.promedio = _mark_against_average(integrantes)
    totales = [m.total for m in integrantes]
    report.maximo, report.minimo = max(totales), min(totales)
    report.por_debajo = sorted(
        (m for m in integrantes if report.promedio - m.total >= umbral),
        key=lambda m: m.total,
    )
    report.por_encima = sorted(
        (m for m in integrantes if m.total - report.promedio >= umbral),
        key=lambda m: m.total,
        reverse=True,
    )
    return report


def notify_below_average(season_id: str, umbral: int = 5) -> EquityReport:
    report = equity_report(season_id, umbral)
    for member in report.por_debajo:
        notifications.notify_user(
            member.user_id, notifications.EQUIDAD_BAJO_PROMEDIO,
            "Estás por debajo del promedio",
            f"Llevas {member.total} rotativos y el promedio del grupo es "
            f"{report.promedio:.1f}. Puedes solicitar más rotativos.",
            {"seasonId": season_id, "total": member.total, "promedio": report.promedio},
        )
    current_app.logger.info(
        "Verificación de equidad en %s: %s integrantes bajo el promedio",
        season_id, len(report.por_debajo),
    )
    return report


# --------- Eventos sin cubrir ---------
def uncovered_events(today: date | None = None, dias_antes: int | None = None,
                     notify: bool = False) -> list[UncoveredEvent]:
    """Eventos de los próximos `dias_antes` días que todavía no completan su cupo."""
    today = today or date.today()
    if dias_antes is None:
        dias_antes = _rule_config("ROTACION_OBLIGATORIA", RotacionObligatoriaConfig).dias_antes

    desde = datetime.combine(today, datetime.min.time())
    hasta = datetime.combine(today + timedelta(days=dias_antes), datetime.max.time())
    events = (
        Event.query.filter(Event.date >= desde, Event.date <= hasta)
        .order_by(Event.date.asc())
        .all()
    )

    sin_cubrir = []
    for event in events:
        cupo = cupos.effective_cupo(event)
        actuales = Rotativo.query.filter(
            Rotativo.event_id == event.id,
            Rotativo.estado.in_(COVERING_STATES),
        ).count()
        if actuales < cupo:
            sin_cubrir.append(UncoveredEvent(
                event_id=event.id,
                title=event.titulo.name if event.titulo else event.title,
                date=event.date,
                cupo_necesario=cupo,
                cupo_actual=actuales,
            ))

    if notify and sin_cubrir:
        listado = "\n".join(
            f"• {e.title} ({e.date:%d/%m %H:%M}) - faltan {e.faltantes} rotativo(s)"
            for e in sin_cubrir
        )
        notifications.notify_admins(
            notifications.EVENTOS_SIN_CUBRIR,
            f"{len(sin_cubrir)} evento(s) sin cubrir",
            f"Los siguientes eventos no tienen el cupo completo:\n{listado}",
            {"eventos": [e.as_dict() for e in sin_cubrir]},
        )
        current_app.logger.info("Aviso de %s eventos sin cubrir enviado", len(sin_cubrir))
    return sin_cubrir
