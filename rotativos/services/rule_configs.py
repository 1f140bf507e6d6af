# services/rule_configs.py
import json
from typing import Any, Optional

from flask import current_app

from ..extensions import db
from ..models import RuleConfig
from ..rules.types import RuleConfigValue
from ..errors import NotFoundError
from . import cupos

# Valores iniciales de cada clave de configuración: (valor, prioridad, descripción)
DEFAULT_RULE_CONFIGS = {
    "CUPO_DIARIO": (
        {"OPERA": 4, "CONCIERTO": 2, "BALLET": 4},
        10,
        "Cupos por defecto según tipo de título. Los ensayos usan el mismo cupo que las funciones del título.",
    ),
    "ENSAYOS_DOBLES": (
        {"max_rotativos_por_titulo": 1},
        15,
        "Límite de rotativos en días con ensayo doble del mismo título.",
    ),
    "LISTA_ESPERA": (
        {"tipo": "FIFO", "vencimiento": None},
        15,
        "Lista de espera por orden de llegada, sin vencimiento; se purga al fin de temporada.",
    ),
    "FUNCIONES_POR_TITULO": (
        {"umbral_funciones": 3, "max_hasta": 1, "porcentaje_sobre": 30},
        16,
        "Hasta 3 funciones por título: máximo 1 rotativo. Más de 3: hasta el 30%.",
    ),
    "BLOQUE_EXCLUSIVO": (
        {"max_por_persona": 1, "permite_cancel": False},
        20,
        "Un bloque por persona por temporada; no se cancela una vez iniciado.",
    ),
    "ROTACION_OBLIGATORIA": (
        {"dias_antes": 5, "criterio": "MENOS_ROTATIVOS"},
        30,
        "Asignación obligatoria faltando 5 días a quienes tienen menos rotativos.",
    ),
    "COBERTURA_EXTERNA": (
        {"criterio": "MAS_ROTATIVOS"},
        35,
        "Para coberturas se prioriza a quienes más rotativos hayan tomado.",
    ),
    "MAX_PROYECTADO": (
        {"base_anual": 50},
        40,
        "Máximo anual por integrante: cupos de la temporada ÷ cantidad de integrantes.",
    ),
    "FINES_SEMANA_MAX": (
        1,
        50,
        "Máximo de fines de semana por mes.",
    ),
    "PLAZO_SOLICITUD": (
        {"mismo_dia": "PENDING_ADMIN", "dia_anterior": "APPROVE"},
        60,
        "Solicitudes del mismo día requieren aprobación; con anticipación se aprueban.",
    ),
    "LICENCIAS": (
        {"calculo_promedio": True},
        70,
        "Al reincorporarse se suma el promedio de rotativos del resto durante la licencia.",
    ),
    "INTEGRANTE_NUEVO": (
        {"usar_promedio": True, "admin_override": True},
        80,
        "El máximo de un integrante nuevo es el promedio del grupo al ingresar.",
    ),
    "ALERTA_UMBRAL": (
        90,
        200,
        "Umbral (%) del máximo proyectado a partir del cual se alerta.",
    ),
}


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        # Valor no JSON: la regla lo decodifica o usa sus defaults
        return raw


def _serialize_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


class RuleConfigStore:
    """Lectura y escritura de los overrides de configuración de reglas."""

    def load_all(self) -> dict[str, RuleConfigValue]:
        return {
            config.key: RuleConfigValue(
                enabled=config.enabled,
                value=_parse_value(config.value),
                priority=config.priority,
            )
            for config in RuleConfig.query.all()
        }

    def get(self, key: str) -> Optional[RuleConfigValue]:
        config = db.session.get(RuleConfig, key)
        if config is None:
            return None
        return RuleConfigValue(
            enabled=config.enabled,
            value=_parse_value(config.value),
            priority=config.priority,
        )

    def update(self, key: str, *, value: Any = None, enabled: bool | None = None,
               priority: int | None = None) -> RuleConfig:
        config = db.session.get(RuleConfig, key)
        if config is None:
            raise NotFoundError("Configuración de regla", key)
        if value is not None:
            config.value = _serialize_value(value)
        if enabled is not None:
            config.enabled = enabled
        if priority is not None:
            config.priority = priority
        db.session.flush()
        cupos.invalidate_cache()
        current_app.logger.info(
            "Configuración %s actualizada (enabled=%s, priority=%s)",
            key, config.enabled, config.priority,
        )
        return config

    def seed_defaults(self) -> int:
        """Crea las claves faltantes con sus valores por defecto."""
        created = 0
        for key, (value, priority, description) in DEFAULT_RULE_CONFIGS.items():
            if db.session.get(RuleConfig, key) is not None:
                continue
            db.session.add(RuleConfig(
                key=key,
                value=_serialize_value(value),
                enabled=True,
                priority=priority,
                description=description,
            ))
            created += 1
        db.session.flush()
        cupos.invalidate_cache()
        return created
