"""
Motor de validación.

Corre las reglas habilitadas en orden de prioridad contra un contexto, corta en
la primera falla bloqueante y agrega una única acción sugerida.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Protocol

from .base import Rule
from .catalog import RuleCatalog
from .types import (
    RuleConfigValue,
    SuggestedAction,
    ValidationContext,
    ValidationResult,
    ValidationSummary,
)

logger = logging.getLogger(__name__)

CUPO_RULE_ID = "R1_CUPO_DIARIO"
WAITING_LIST_RULE_ID = "R5_LISTA_ESPERA"
ALERT_RULE_ID = "R11_ALERTA_CERCANIA"

# Reglas que no se vuelven a evaluar al promover desde la lista de espera
PROMOTION_EXEMPT_RULES = (CUPO_RULE_ID, WAITING_LIST_RULE_ID, ALERT_RULE_ID)


class ConfigStore(Protocol):
    def load_all(self) -> Mapping[str, RuleConfigValue]: ...

    def get(self, key: str) -> Optional[RuleConfigValue]: ...


def merge_suggestion(current: SuggestedAction, suggested: Optional[SuggestedAction]) -> SuggestedAction:
    """Escalera REJECT > PENDING_ADMIN > WAITING_LIST > APPROVE."""
    if suggested == SuggestedAction.REJECT:
        return SuggestedAction.REJECT
    if suggested == SuggestedAction.PENDING_ADMIN and current != SuggestedAction.REJECT:
        return SuggestedAction.PENDING_ADMIN
    if suggested == SuggestedAction.WAITING_LIST and current == SuggestedAction.APPROVE:
        return SuggestedAction.WAITING_LIST
    return current


class ValidationEngine:
    def __init__(self, catalog: RuleCatalog, config_store: ConfigStore):
        self.catalog = catalog
        self.config_store = config_store

    def effective_rules(
        self,
        configs: Mapping[str, RuleConfigValue],
        exclude: Iterable[str] = (),
    ) -> list[Rule]:
        excluded = set(exclude)
        indexed = [
            (index, rule)
            for index, rule in enumerate(self.catalog.rules())
            if rule.id not in excluded and self._is_enabled(rule, configs)
        ]
        # sorted es estable: los empates conservan el orden de registro
        indexed.sort(key=lambda pair: (self._priority(pair[1], configs), pair[0]))
        return [rule for _, rule in indexed]

    def validate_request(
        self,
        context: ValidationContext,
        exclude: Iterable[str] = (),
    ) -> ValidationSummary:
        configs = self.config_store.load_all()
        rules = self.effective_rules(configs, exclude)

        results: list[ValidationResult] = []
        suggested = SuggestedAction.APPROVE

        for rule in rules:
            config = rule.decode_config(self._raw_value(rule, configs))
            result = rule.validate(context, config)
            results.append(result)

            if result.blocking:
                logger.debug("Regla bloqueante %s: %s", rule.id, result.message)
                return ValidationSummary(
                    can_proceed=False,
                    results=results,
                    suggested_action=result.suggested_action or SuggestedAction.REJECT,
                    blocking_rule=rule.id,
                )

            if not result.passed:
                suggested = merge_suggestion(suggested, result.suggested_action)

        return ValidationSummary(
            can_proceed=True,
            results=results,
            suggested_action=suggested,
        )

    def validate_cupo_only(self, context: ValidationContext) -> ValidationResult:
        rule = self.catalog.get(CUPO_RULE_ID)
        if rule is None:
            return ValidationResult(
                rule_id=CUPO_RULE_ID,
                rule_name="Cupo diario",
                passed=True,
                message="Regla no encontrada, permitiendo por defecto",
            )
        override = self.config_store.get(rule.config_key)
        raw = override.value if override is not None else None
        return rule.validate(context, rule.decode_config(raw))

    @staticmethod
    def _is_enabled(rule: Rule, configs: Mapping[str, RuleConfigValue]) -> bool:
        override = configs.get(rule.config_key)
        return override.enabled if override is not None else rule.enabled

    @staticmethod
    def _priority(rule: Rule, configs: Mapping[str, RuleConfigValue]) -> int:
        override = configs.get(rule.config_key)
        return override.priority if override is not None else rule.priority

    @staticmethod
    def _raw_value(rule: Rule, configs: Mapping[str, RuleConfigValue]):
        override = configs.get(rule.config_key)
        return override.value if override is not None else None
