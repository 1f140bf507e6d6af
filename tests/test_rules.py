from datetime import date, datetime

import pytest

from rotativos.models import EventoTipo, RotativoTipo
from rotativos.rules import EventData, SuggestedAction, UserBalanceSnapshot, ValidationContext
from rotativos.rules.configs import (
    AlertaUmbralConfig,
    CupoDiarioConfig,
    FinesSemanaConfig,
    FuncionesPorTituloConfig,
    PlazoSolicitudConfig,
)
from rotativos.rules.implementations.alerta_cercania import (
    EXCESO,
    LIMITE,
    NINGUNA,
    AlertaCercaniaRule,
)
from rotativos.rules.implementations.cupo_diario import CupoDiarioRule
from rotativos.rules.implementations.fines_semana import FinesSemanaRule
from rotativos.rules.implementations.funciones_por_titulo import max_funciones_permitidas
from rotativos.rules.implementations.integrante_nuevo import IntegranteNuevoRule
from rotativos.rules.implementations.lista_espera import ListaEsperaRule
from rotativos.rules.implementations.max_proyectado import MaxProyectadoRule
from rotativos.rules.implementations.plazo_solicitud import PlazoSolicitudRule
from rotativos.rules.implementations.rotacion_obligatoria import RotacionObligatoriaRule

SATURDAY = datetime(2026, 3, 7, 20)
TUESDAY = datetime(2026, 3, 10, 20)


def make_context(**kwargs):
    values = dict(
        user_id="u1",
        event_id="e1",
        season_id="s1",
        request_type=RotativoTipo.voluntario,
        request_date=datetime(2026, 3, 2, 10),
        event_date=TUESDAY,
        event_type="OPERA",
        evento_tipo=EventoTipo.funcion,
    )
    values.update(kwargs)
    return ValidationContext(**values)


def validate(rule_cls, context, raw=None):
    rule = rule_cls()
    return rule.validate(context, rule.decode_config(raw))


# --- Cupo diario ---
def test_cupo_with_room_approves():
    result = validate(CupoDiarioRule, make_context(event_data=EventData(current_approved=3, cupo_total=4)))

    assert result.passed is True
    assert result.suggested_action == SuggestedAction.APPROVE
    assert result.details["cupoDisponible"] == 1


def test_cupo_full_blocks_towards_waiting_list():
    result = validate(CupoDiarioRule, make_context(event_data=EventData(current_approved=4, cupo_total=4)))

    assert result.passed is False
    assert result.blocking is True
    assert result.suggested_action == SuggestedAction.WAITING_LIST


def test_cupo_falls_back_to_configured_type_capacity():
    context = make_context(event_type="CONCIERTO", event_data=EventData(current_approved=2))

    result = validate(CupoDiarioRule, context, {"CONCIERTO": 3})

    assert result.passed is True
    assert result.details["cupoTotal"] == 3


# --- Máximo proyectado ---
def balance(**kwargs):
    return UserBalanceSnapshot(**kwargs)


def test_max_landing_exactly_on_quota_approves():
    context = make_context(user_balance=balance(rotativos_tomados=49, max_proyectado=50))

    result = validate(MaxProyectadoRule, context)

    assert result.passed is True
    assert result.suggested_action == SuggestedAction.APPROVE


def test_max_at_quota_goes_to_admin_without_blocking():
    context = make_context(
        user_balance=balance(rotativos_tomados=48, rotativos_obligatorios=2, max_proyectado=50)
    )

    result = validate(MaxProyectadoRule, context)

    assert result.passed is False
    assert result.blocking is False
    assert result.suggested_action == SuggestedAction.PENDING_ADMIN


def test_max_already_over_quota_blocks():
    context = make_context(user_balance=balance(rotativos_tomados=51, max_proyectado=50))

    result = validate(MaxProyectadoRule, context)

    assert result.blocking is True
    assert result.suggested_action == SuggestedAction.REJECT


def test_max_manual_override_wins():
    context = make_context(
        user_balance=balance(rotativos_tomados=55, max_proyectado=50, max_ajustado_manual=60)
    )

    result = validate(MaxProyectadoRule, context)

    assert result.passed is True
    assert result.details["maxProyectado"] == 60


def test_max_mandatory_requests_bypass_quota():
    context = make_context(
        request_type=RotativoTipo.obligatorio,
        user_balance=balance(rotativos_tomados=80, max_proyectado=50),
    )

    result = validate(MaxProyectadoRule, context)

    assert result.passed is True


# --- Fines de semana ---
def test_weekend_first_of_month_allowed():
    context = make_context(event_date=SATURDAY, is_weekend=True)

    assert validate(FinesSemanaRule, context).passed is True


def test_weekend_second_of_month_blocked():
    context = make_context(
        event_date=SATURDAY,
        is_weekend=True,
        user_balance=balance(fines_de_semana_mes={"2026-03": 1}),
    )

    result = validate(FinesSemanaRule, context)

    assert result.blocking is True
    assert result.details["mes"] == "2026-03"


def test_weekend_limit_configurable():
    context = make_context(
        event_date=SATURDAY,
        is_weekend=True,
        user_balance=balance(fines_de_semana_mes={"2026-03": 1}),
    )

    assert validate(FinesSemanaRule, context, 2).passed is True


def test_weekend_block_events_are_exempt():
    context = make_context(
        event_date=SATURDAY,
        is_weekend=True,
        is_part_of_block=True,
        block_id="b1",
        user_balance=balance(fines_de_semana_mes={"2026-03": 5}),
    )

    assert validate(FinesSemanaRule, context).passed is True


# --- Lista de espera ---
def test_waiting_list_rule_is_quiet_while_there_is_room():
    context = make_context(event_data=EventData(current_approved=1, cupo_total=4, waiting_list_length=0))

    result = validate(ListaEsperaRule, context)

    assert result.passed is True
    assert result.suggested_action == SuggestedAction.APPROVE


def test_waiting_list_rule_recommends_queue_when_full():
    context = make_context(event_data=EventData(current_approved=4, cupo_total=4, waiting_list_length=2))

    result = validate(ListaEsperaRule, context)

    assert result.passed is True
    assert result.suggested_action == SuggestedAction.WAITING_LIST
    assert result.details["posicionEstimada"] == 3


# --- Plazo de solicitud ---
def test_past_event_is_rejected():
    context = make_context(request_date=datetime(2026, 3, 11, 9))

    result = validate(PlazoSolicitudRule, context)

    assert result.blocking is True
    assert result.suggested_action == SuggestedAction.REJECT


def test_same_day_request_needs_admin():
    context = make_context(request_date=datetime(2026, 3, 10, 9))

    result = validate(PlazoSolicitudRule, context)

    assert result.passed is False
    assert result.blocking is False
    assert result.suggested_action == SuggestedAction.PENDING_ADMIN


def test_same_day_policy_is_configurable():
    context = make_context(request_date=datetime(2026, 3, 10, 9))

    result = validate(PlazoSolicitudRule, context, {"mismo_dia": "APPROVE"})

    assert result.passed is True


def test_request_in_advance_approves():
    result = validate(PlazoSolicitudRule, make_context())

    assert result.passed is True
    assert result.details["diasAnticipacion"] == 8


# --- Informativas ---
def test_informational_rules_always_pass():
    context = make_context(user_balance=balance(fecha_ingreso=date(2026, 2, 1), max_proyectado=12))

    assert validate(RotacionObligatoriaRule, context).passed is True
    result = validate(IntegranteNuevoRule, context)
    assert result.passed is True
    assert result.details["esIntegranteNuevo"] is True
    assert RotacionObligatoriaRule.informational is True


# --- Alerta de cercanía ---
@pytest.mark.parametrize(
    "tomados, nivel",
    [
        (1, NINGUNA),
        (44, LIMITE),
        (50, EXCESO),
    ],
)
def test_alert_levels(tomados, nivel):
    context = make_context(user_balance=balance(rotativos_tomados=tomados, max_proyectado=50))

    result = validate(AlertaCercaniaRule, context)

    assert result.passed is True
    assert result.details["nivelAlerta"] == nivel


def test_alert_reports_percentage_with_new_request():
    context = make_context(user_balance=balance(rotativos_tomados=44, max_proyectado=50))

    result = validate(AlertaCercaniaRule, context)

    assert result.details["porcentajeConNuevo"] == pytest.approx(90.0)


# --- Decodificación de configuración ---
def test_scalar_configs_decode_into_their_field():
    assert FinesSemanaConfig.decode(2).max_por_mes == 2
    assert AlertaUmbralConfig.decode("80").umbral == 80.0


def test_invalid_config_falls_back_to_defaults():
    assert FinesSemanaConfig.decode("muchos") == FinesSemanaConfig()
    assert PlazoSolicitudConfig.decode({"mismo_dia": "NUNCA"}) == PlazoSolicitudConfig()


def test_cupo_config_merges_over_defaults():
    config = CupoDiarioConfig.decode({"opera": 6})

    assert config.for_type("OPERA") == 6
    assert config.for_type("BALLET") == 4
    assert config.for_type("RECITAL") == 2
    assert config.for_type("DESCONOCIDO") == config.default_cupo


@pytest.mark.parametrize("total, esperado", [(1, 1), (3, 1), (4, 1), (10, 3), (20, 6)])
def test_max_funciones_permitidas(total, esperado):
    assert max_funciones_permitidas(total, FuncionesPorTituloConfig()) == esperado
