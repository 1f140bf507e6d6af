"""
Contrato de una regla.

Cada regla es una instancia de ``Rule`` con su metadata fija (id, prioridad,
categoría, clave de configuración) y un ``validate`` que recibe el contexto y
la configuración ya decodificada.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional, Type

from .configs import RuleConfigBase
from .types import RuleCategory, SuggestedAction, ValidationContext, ValidationResult


class Rule:
    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    category: ClassVar[RuleCategory]
    priority: ClassVar[int]
    enabled: ClassVar[bool] = True
    config_key: ClassVar[str]
    config_class: ClassVar[Type[RuleConfigBase]]
    # Reglas que solo informan y nunca deciden
    informational: ClassVar[bool] = False

    def validate(self, context: ValidationContext, config) -> ValidationResult:
        raise NotImplementedError

    def decode_config(self, raw: Any):
        return self.config_class.decode(raw)

    def result(
        self,
        passed: bool,
        message: str,
        *,
        blocking: bool = False,
        suggested_action: Optional[SuggestedAction] = None,
        **details: Any,
    ) -> ValidationResult:
        return ValidationResult(
            rule_id=self.id,
            rule_name=self.name,
            passed=passed,
            blocking=blocking,
            message=message,
            details=details,
            suggested_action=suggested_action,
        )

    def metadata(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "priority": self.priority,
            "enabled": self.enabled,
            "configKey": self.config_key,
            "informational": self.informational,
        }

    def __repr__(self):
        return f"<Rule {self.id} priority={self.priority}>"
