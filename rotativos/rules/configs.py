"""
Configuración tipada de cada regla.

El valor persistido en ``rule_configs`` es JSON libre. Cada regla declara su
dataclass de configuración y ``decode`` es el único lugar donde ese JSON se
convierte al tipo concreto; si el valor no se puede interpretar se usan los
valores por defecto de la regla.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Mapping, Optional

from .types import SuggestedAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleConfigBase:
    # Campo que recibe el valor cuando el JSON es un escalar (p. ej. "90")
    scalar_field: ClassVar[Optional[str]] = None

    @classmethod
    def decode(cls, raw: Any):
        default = cls()
        if raw is None:
            return default
        try:
            if isinstance(raw, Mapping):
                return cls._from_mapping(default, raw)
            if cls.scalar_field is not None:
                return cls._from_mapping(default, {cls.scalar_field: raw})
        except (TypeError, ValueError) as exc:
            logger.warning("Configuración inválida para %s (%r): %s", cls.__name__, raw, exc)
            return default
        logger.warning("Configuración inválida para %s: %r", cls.__name__, raw)
        return default

    @classmethod
    def _from_mapping(cls, default, raw: Mapping):
        changes = {}
        for f in fields(cls):
            if f.name not in raw:
                continue
            current = getattr(default, f.name)
            changes[f.name] = _coerce(raw[f.name], current)
        return replace(default, **changes)


def _coerce(value: Any, current: Any):
    if current is None or value is None:
        return value
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "t", "yes", "y"}
        return bool(value)
    if isinstance(current, SuggestedAction):
        return SuggestedAction(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, str):
        return str(value)
    if isinstance(current, Mapping):
        if not isinstance(value, Mapping):
            raise TypeError(f"se esperaba un objeto, llegó {type(value).__name__}")
        return {str(k): int(v) for k, v in value.items()}
    return value


DEFAULT_CUPOS = {
    "OPERA": 4,
    "CONCIERTO": 2,
    "BALLET": 4,
    "ENSAYO": 2,
}

# Tipos de título que comparten cupo con otro tipo
CUPO_ALIASES = {
    "RECITAL": "CONCIERTO",
}


@dataclass(frozen=True)
class CupoDiarioConfig(RuleConfigBase):
    cupos: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_CUPOS))
    default_cupo: int = 2

    @classmethod
    def decode(cls, raw: Any):
        # El valor persistido es directamente el mapa tipo -> cupo
        if isinstance(raw, Mapping) and "cupos" not in raw:
            try:
                cupos = dict(DEFAULT_CUPOS)
                cupos.update({str(k).upper(): int(v) for k, v in raw.items()})
            except (TypeError, ValueError) as exc:
                logger.warning("Configuración de cupos inválida (%r): %s", raw, exc)
                return cls()
            return cls(cupos=cupos)
        return super().decode(raw)

    def for_type(self, event_type: Optional[str]) -> int:
        if not event_type:
            return self.default_cupo
        key = event_type.upper()
        if key in self.cupos:
            return self.cupos[key]
        alias = CUPO_ALIASES.get(key)
        if alias and alias in self.cupos:
            return self.cupos[alias]
        return self.default_cupo


@dataclass(frozen=True)
class MaxProyectadoConfig(RuleConfigBase):
    base_anual: int = 50


@dataclass(frozen=True)
class FinesSemanaConfig(RuleConfigBase):
    scalar_field: ClassVar[Optional[str]] = "max_por_mes"

    max_por_mes: int = 1


@dataclass(frozen=True)
class BloqueExclusivoConfig(RuleConfigBase):
    max_por_persona: int = 1
    permite_cancel: bool = False


@dataclass(frozen=True)
class ListaEsperaConfig(RuleConfigBase):
    tipo: str = "FIFO"
    vencimiento: Optional[int] = None  # días; None = se purga al fin de temporada


@dataclass(frozen=True)
class PlazoSolicitudConfig(RuleConfigBase):
    mismo_dia: SuggestedAction = SuggestedAction.PENDING_ADMIN
    dia_anterior: SuggestedAction = SuggestedAction.APPROVE


@dataclass(frozen=True)
class RotacionObligatoriaConfig(RuleConfigBase):
    dias_antes: int = 5
    criterio: str = "MENOS_ROTATIVOS"


@dataclass(frozen=True)
class CoberturaExternaConfig(RuleConfigBase):
    criterio: str = "MAS_ROTATIVOS"


@dataclass(frozen=True)
class LicenciasConfig(RuleConfigBase):
    calculo_promedio: bool = True


@dataclass(frozen=True)
class IntegranteNuevoConfig(RuleConfigBase):
    usar_promedio: bool = True
    admin_override: bool = True


@dataclass(frozen=True)
class AlertaUmbralConfig(RuleConfigBase):
    scalar_field: ClassVar[Optional[str]] = "umbral"

    umbral: float = 90.0


@dataclass(frozen=True)
class EnsayosDoblesConfig(RuleConfigBase):
    max_rotativos_por_titulo: int = 1


@dataclass(frozen=True)
class FuncionesPorTituloConfig(RuleConfigBase):
    umbral_funciones: int = 3
    max_hasta: int = 1
    porcentaje_sobre: int = 30
