from __future__ import annotations

from typing import Iterable, Optional

from .base import Rule


class RuleCatalog:
    """Registro de reglas de la aplicación, en orden de registro."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        # Reemplazar conserva la posición original de registro
        self._rules[rule.id] = rule

    def rules(self) -> list[Rule]:
        return list(self._rules.values())

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def ids(self) -> list[str]:
        return list(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)


def build_default_catalog() -> RuleCatalog:
    from .implementations import ALL_RULES

    return RuleCatalog(rule_cls() for rule_cls in ALL_RULES)
