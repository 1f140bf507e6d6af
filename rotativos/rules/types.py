"""
Tipos compartidos por el motor de reglas.

- ValidationContext: foto inmutable de todo lo que una regla necesita para decidir.
- ValidationResult: resultado de una regla.
- ValidationSummary: resultado agregado de una corrida completa.
- RuleConfigValue: override persistido de una regla (enabled, value, priority).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..models import EventoTipo, RotativoTipo


class SuggestedAction(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    WAITING_LIST = "WAITING_LIST"
    PENDING_ADMIN = "PENDING_ADMIN"


class RuleCategory(str, enum.Enum):
    CUPO = "cupo"
    RESTRICCION = "restriccion"
    ROTACION = "rotacion"
    ALERTA = "alerta"
    BLOQUE = "bloque"


@dataclass(frozen=True)
class UserBalanceSnapshot:
    rotativos_tomados: int = 0
    rotativos_obligatorios: int = 0
    rotativos_por_licencia: int = 0
    max_proyectado: int = 50
    max_ajustado_manual: Optional[int] = None
    fines_de_semana_mes: Mapping[str, int] = field(default_factory=dict)
    bloque_usado: bool = False
    fecha_ingreso: Optional[date] = None

    @property
    def max_efectivo(self) -> int:
        if self.max_ajustado_manual is not None:
            return self.max_ajustado_manual
        return self.max_proyectado

    @property
    def total_actual(self) -> int:
        return (
            self.rotativos_tomados
            + self.rotativos_obligatorios
            + self.rotativos_por_licencia
        )


@dataclass(frozen=True)
class EventData:
    current_approved: int = 0
    cupo_total: Optional[int] = None
    waiting_list_length: int = 0


@dataclass(frozen=True)
class SeasonData:
    working_days: int = 0
    total_integrantes: int = 0
    promedio_rotativos: float = 0.0


@dataclass(frozen=True)
class ValidationContext:
    user_id: str
    event_id: str
    season_id: str
    request_type: RotativoTipo
    request_date: datetime
    event_date: datetime
    event_type: str
    evento_tipo: Optional[EventoTipo] = None
    is_weekend: bool = False
    is_part_of_block: bool = False
    block_id: Optional[str] = None
    user_balance: UserBalanceSnapshot = field(default_factory=UserBalanceSnapshot)
    event_data: EventData = field(default_factory=EventData)
    season_data: SeasonData = field(default_factory=SeasonData)

    @property
    def days_until_event(self) -> int:
        return (self.event_date.date() - self.request_date.date()).days


@dataclass
class ValidationResult:
    rule_id: str
    rule_name: str
    passed: bool
    blocking: bool = False
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    suggested_action: Optional[SuggestedAction] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "passed": self.passed,
            "blocking": self.blocking,
            "message": self.message,
            "details": _jsonable(self.details),
            "suggestedAction": self.suggested_action.value if self.suggested_action else None,
        }


@dataclass
class ValidationSummary:
    can_proceed: bool
    results: list[ValidationResult]
    suggested_action: SuggestedAction
    blocking_rule: Optional[str] = None

    def failed(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.passed]

    def result_for(self, rule_id: str) -> Optional[ValidationResult]:
        for result in self.results:
            if result.rule_id == rule_id:
                return result
        return None

    def as_dict(self) -> dict[str, Any]:
        return {
            "canProceed": self.can_proceed,
            "results": [r.as_dict() for r in self.results],
            "suggestedAction": self.suggested_action.value,
            "blockingRule": self.blocking_rule,
        }


@dataclass(frozen=True)
class RuleConfigValue:
    enabled: bool
    value: Any
    priority: int


def _jsonable(value):
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value
