# services/cupos.py
import json
import time
from dataclasses import replace

from flask import current_app

from ..extensions import db
from ..models import Event, RuleConfig
from ..rules.configs import CupoDiarioConfig

CUPO_CONFIG_KEY = "CUPO_DIARIO"


class CupoCache:
    """Cache de los cupos por tipo de título, con TTL e invalidación explícita."""

    def __init__(self):
        self._value: CupoDiarioConfig | None = None
        self._loaded_at = 0.0

    def get(self) -> CupoDiarioConfig:
        ttl = current_app.config.get("CUPO_CACHE_TTL", 60)
        now = time.monotonic()
        if self._value is not None and (now - self._loaded_at) < ttl:
            return self._value

        raw = None
        config = db.session.get(RuleConfig, CUPO_CONFIG_KEY)
        if config is not None:
            try:
                raw = json.loads(config.value)
            except (TypeError, ValueError):
                current_app.logger.warning("Valor de %s inválido: %r", CUPO_CONFIG_KEY, config.value)

        value = CupoDiarioConfig.decode(raw)
        value = replace(value, default_cupo=current_app.config.get("DEFAULT_CUPO", value.default_cupo))

        self._value = value
        self._loaded_at = now
        return value

    def invalidate(self) -> None:
        self._value = None
        self._loaded_at = 0.0


_cache = CupoCache()


def get_cupos() -> CupoDiarioConfig:
    return _cache.get()


def invalidate_cache() -> None:
    _cache.invalidate()


def event_type_key(event: Event) -> str:
    """Categoría de cupo del evento: el tipo de su título, o su propio tipo."""
    if event.titulo is not None:
        return event.titulo.type.value
    return event.evento_tipo.value


def effective_cupo(event: Event) -> int:
    """Cupo del evento: override propio, cupo del título o cupo por tipo."""
    if event.cupo_override is not None:
        return event.cupo_override
    if event.titulo is not None and event.titulo.cupo is not None:
        return event.titulo.cupo
    return get_cupos().for_type(event_type_key(event))
