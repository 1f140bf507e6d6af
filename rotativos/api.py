#rotativos/api.py
from datetime import date, datetime

from flask import Blueprint, current_app, jsonify, request

from .extensions import db
from .errors import InvalidRequestError, NotFoundError
from .models import Rotativo, RotativoEstado, RotativoTipo, User
from .services import audit, balance as balance_service
from .services import blocks as block_service
from .services import equity as equity_service
from .services import requests as request_service
from .services import validation as validation_service
from .services import waiting_list as waiting_list_service
from .services.rule_configs import RuleConfigStore

bp = Blueprint("api", __name__)


@bp.errorhandler(NotFoundError)
def _not_found(exc):
    db.session.rollback()
    return jsonify({"error": str(exc)}), 404


@bp.errorhandler(InvalidRequestError)
def _invalid(exc):
    db.session.rollback()
    return jsonify({"error": str(exc)}), 400


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _required(data: dict, key: str):
    value = data.get(key)
    if value in (None, ""):
        raise InvalidRequestError(f"Falta el campo {key}")
    return value


def _parse_datetime(value) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Fecha inválida: {value}")


def _parse_date(value) -> date:
    parsed = _parse_datetime(value)
    if parsed is None:
        raise InvalidRequestError("Falta la fecha")
    return parsed.date()


def _parse_tipo(value) -> RotativoTipo:
    if not value:
        return RotativoTipo.voluntario
    try:
        return RotativoTipo(str(value).upper())
    except ValueError:
        raise InvalidRequestError(f"Tipo de rotativo inválido: {value}")


def _parse_int(value, default: int | None = None) -> int | None:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Número inválido: {value}")


def _rotativo_dict(rotativo: Rotativo) -> dict:
    return {
        "id": rotativo.id,
        "userId": rotativo.user_id,
        "eventId": rotativo.event_id,
        "estado": rotativo.estado.value,
        "tipo": rotativo.tipo.value,
        "motivoInicial": rotativo.motivo_inicial,
        "motivo": rotativo.motivo,
        "aprobadoPor": rotativo.aprobado_por,
    }


def _balance_dict(balance) -> dict:
    return {
        "userId": balance.user_id,
        "seasonId": balance.season_id,
        "rotativosTomados": balance.rotativos_tomados,
        "rotativosObligatorios": balance.rotativos_obligatorios,
        "rotativosPorLicencia": balance.rotativos_por_licencia,
        "maxProyectado": balance.max_proyectado,
        "maxAjustadoManual": balance.max_ajustado_manual,
        "maxEfectivo": balance.max_efectivo,
        "total": balance.total,
        "finesDeSemanaMes": balance.fines_de_semana_mes or {},
        "bloqueUsado": balance.bloque_usado,
        "fechaIngreso": balance.fecha_ingreso.isoformat() if balance.fecha_ingreso else None,
    }


def _require_admin(actor_id) -> User:
    actor = db.session.get(User, actor_id) if actor_id else None
    if actor is None or not actor.is_admin:
        raise InvalidRequestError("La operación requiere un administrador")
    return actor


# --- Solicitudes ---
@bp.route("/solicitudes/validar", methods=["POST"])
def validar_solicitud():
    data = _payload()
    summary = validation_service.validate(
        _required(data, "userId"),
        _required(data, "eventId"),
        _parse_tipo(data.get("tipo")),
        _parse_datetime(data.get("requestDate")),
    )
    return jsonify(summary.as_dict())


@bp.route("/solicitudes", methods=["POST"])
def crear_solicitud():
    data = _payload()
    outcome = request_service.create_request(
        _required(data, "userId"),
        _required(data, "eventId"),
        _parse_tipo(data.get("tipo")),
        _parse_datetime(data.get("requestDate")),
    )
    db.session.commit()
    status = 201 if outcome.rotativo is not None else 200
    return jsonify(outcome.as_dict()), status


@bp.route("/solicitudes/<rotativo_id>/aprobar", methods=["POST"])
def aprobar_solicitud(rotativo_id):
    actor = _require_admin(_payload().get("actorId"))
    rotativo = request_service.approve_request(rotativo_id, actor.id)
    db.session.commit()
    return jsonify(_rotativo_dict(rotativo))


@bp.route("/solicitudes/<rotativo_id>/rechazar", methods=["POST"])
def rechazar_solicitud(rotativo_id):
    data = _payload()
    actor = _require_admin(data.get("actorId"))
    rotativo = request_service.reject_request(rotativo_id, actor.id, data.get("motivo"))
    db.session.commit()
    return jsonify(_rotativo_dict(rotativo))


@bp.route("/solicitudes/<rotativo_id>/cancelar", methods=["POST"])
def cancelar_solicitud(rotativo_id):
    actor_id = _required(_payload(), "actorId")
    rotativo, promotion = request_service.cancel_request(rotativo_id, actor_id)
    db.session.commit()
    return jsonify({
        "rotativo": _rotativo_dict(rotativo),
        "promocion": promotion.as_dict() if promotion else None,
    })


@bp.route("/solicitudes/obligatorio", methods=["POST"])
def asignar_obligatorio():
    data = _payload()
    actor = _require_admin(data.get("actorId"))
    rotativo = request_service.assign_mandatory(
        _required(data, "userId"), _required(data, "eventId"), actor.id
    )
    db.session.commit()
    return jsonify(_rotativo_dict(rotativo)), 201


# --- Lista de espera ---
@bp.route("/eventos/<event_id>/lista-espera", methods=["GET"])
def lista_espera(event_id):
    entries = waiting_list_service.get_waiting_list(event_id)
    return jsonify([
        {"userId": e.user_id, "position": e.position, "name": e.user.name if e.user else None}
        for e in entries
    ])


@bp.route("/eventos/<event_id>/lista-espera/<user_id>", methods=["DELETE"])
def retirar_de_lista(event_id, user_id):
    actor_id = _payload().get("actorId") or user_id
    removed = waiting_list_service.remove_from_waiting_list(user_id, event_id, actor_id)
    if not removed:
        raise NotFoundError("Entrada de lista de espera", f"{event_id}/{user_id}")
    rotativo = Rotativo.query.filter_by(user_id=user_id, event_id=event_id).first()
    if rotativo is not None and rotativo.estado == RotativoEstado.en_espera:
        rotativo.estado = RotativoEstado.cancelado
    db.session.commit()
    return "", 204


@bp.route("/eventos/<event_id>/lista-espera/promover", methods=["POST"])
def promover(event_id):
    actor = _require_admin(_payload().get("actorId"))
    result = waiting_list_service.promote_from_waiting_list(event_id, actor_id=actor.id)
    db.session.commit()
    return jsonify(result.as_dict())


@bp.route("/temporadas/<season_id>/lista-espera/purgar", methods=["POST"])
def purgar_lista(season_id):
    actor = _require_admin(_payload().get("actorId"))
    count = waiting_list_service.purge_waiting_list(season_id, actor.id)
    db.session.commit()
    return jsonify({"eliminadas": count})


# --- Reglas ---
@bp.route("/reglas", methods=["GET"])
def listar_reglas():
    catalog = current_app.extensions["rotativos_catalog"]
    configs = RuleConfigStore().load_all()
    reglas = []
    for rule in catalog.rules():
        meta = rule.metadata()
        override = configs.get(rule.config_key)
        if override is not None:
            meta.update(enabled=override.enabled, priority=override.priority, value=override.value)
        reglas.append(meta)
    reglas.sort(key=lambda r: r["priority"])
    return jsonify(reglas)


@bp.route("/reglas/<key>", methods=["PUT"])
def actualizar_regla(key):
    data = _payload()
    actor = _require_admin(data.get("actorId"))
    config = RuleConfigStore().update(
        key,
        value=data.get("value"),
        enabled=data.get("enabled"),
        priority=data.get("priority"),
    )
    audit.record_audit_event(
        audit.REGLA_MODIFICADA, "RuleConfig", key, actor.id,
        details={k: data[k] for k in ("value", "enabled", "priority") if k in data},
    )
    db.session.commit()
    return jsonify({
        "key": config.key,
        "value": config.value,
        "enabled": config.enabled,
        "priority": config.priority,
    })


# --- Balance ---
@bp.route("/integrantes/<user_id>/balance/<season_id>", methods=["GET"])
def ver_balance(user_id, season_id):
    balance = balance_service.get_user_balance(user_id, season_id)
    if balance is None:
        raise NotFoundError("Balance", f"{user_id}/{season_id}")
    return jsonify(_balance_dict(balance))


@bp.route("/integrantes/<user_id>/balance/<season_id>/recalcular", methods=["POST"])
def recalcular_balance(user_id, season_id):
    actor = _require_admin(_payload().get("actorId"))
    balance = balance_service.recalculate_balance(user_id, season_id, actor.id)
    db.session.commit()
    return jsonify(_balance_dict(balance))


@bp.route("/integrantes/<user_id>/balance/<season_id>/maximo", methods=["PUT"])
def ajustar_maximo(user_id, season_id):
    data = _payload()
    actor = _require_admin(data.get("actorId"))
    value = data.get("maxAjustado")
    try:
        value = int(value) if value is not None else None
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Máximo inválido: {value}")
    balance = balance_service.set_manual_max(user_id, season_id, value, actor.id)
    db.session.commit()
    return jsonify(_balance_dict(balance))


@bp.route("/integrantes/<user_id>/licencias", methods=["POST"])
def registrar_licencia(user_id):
    data = _payload()
    actor = _require_admin(data.get("actorId"))
    start, end = _parse_date(data.get("startDate")), _parse_date(data.get("endDate"))
    if end < start:
        raise InvalidRequestError("La licencia termina antes de empezar")
    license = balance_service.register_license(
        user_id, _required(data, "seasonId"), start, end, data.get("description"), actor.id,
    )
    db.session.commit()
    return jsonify({"id": license.id, "rotativosCalculados": license.rotativos_calculados}), 201


@bp.route("/integrantes/<user_id>/ingreso", methods=["POST"])
def registrar_ingreso(user_id):
    data = _payload()
    _require_admin(data.get("actorId"))
    balance = balance_service.register_new_member(
        user_id, _required(data, "seasonId"), _parse_date(data.get("fechaIngreso")),
    )
    db.session.commit()
    return jsonify(_balance_dict(balance)), 201


# --- Bloques ---
@bp.route("/bloques/<block_id>/cancelar", methods=["POST"])
def cancelar_bloque(block_id):
    actor = _require_admin(_payload().get("actorId"))
    block, promociones = block_service.cancel_block(block_id, actor.id)
    db.session.commit()
    return jsonify({
        "blockId": block.id,
        "estado": block.estado.value,
        "promociones": [p.as_dict() for p in promociones],
    })


# --- Equidad ---
@bp.route("/eventos/<event_id>/candidatos-rotacion", methods=["GET"])
def candidatos_rotacion(event_id):
    _require_admin(request.args.get("actorId"))
    result = equity_service.rotation_candidates(
        event_id, request.args.get("criterio"), _parse_tipo(request.args.get("tipo")),
    )
    return jsonify(result.as_dict())


@bp.route("/temporadas/<season_id>/equidad", methods=["GET"])
def verificar_equidad(season_id):
    _require_admin(request.args.get("actorId"))
    report = equity_service.equity_report(season_id, _parse_int(request.args.get("umbral"), 5))
    return jsonify(report.as_dict())


@bp.route("/temporadas/<season_id>/equidad/notificar", methods=["POST"])
def notificar_equidad(season_id):
    data = _payload()
    _require_admin(data.get("actorId"))
    report = equity_service.notify_below_average(season_id, _parse_int(data.get("umbral"), 5))
    db.session.commit()
    return jsonify(report.as_dict())


@bp.route("/eventos/sin-cubrir", methods=["POST"])
def eventos_sin_cubrir():
    data = _payload()
    _require_admin(data.get("actorId"))
    eventos = equity_service.uncovered_events(
        dias_antes=_parse_int(data.get("diasAntes")), notify=True,
    )
    db.session.commit()
    return jsonify({
        "eventosSinCubrir": len(eventos),
        "detalles": [e.as_dict() for e in eventos],
    })
