from ...models import RotativoTipo
from ..base import Rule
from ..configs import RotacionObligatoriaConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class RotacionObligatoriaRule(Rule):
    id = "R7_ROTACION_OBLIGATORIA"
    name = "Rotación obligatoria"
    description = (
        "Cuando sobra personal y nadie solicita rotativo, hasta 5 días antes hay "
        "plazo para consenso entre integrantes. Después el administrador asigna "
        "priorizando a quienes tienen menos rotativos. Las asignaciones quedan en "
        "auditoría."
    )
    category = RuleCategory.ROTACION
    priority = 30
    config_key = "ROTACION_OBLIGATORIA"
    config_class = RotacionObligatoriaConfig
    informational = True

    def validate(self, context: ValidationContext, config: RotacionObligatoriaConfig):
        if context.request_type != RotativoTipo.obligatorio:
            return self.result(
                True,
                "No es rotación obligatoria",
                suggested_action=SuggestedAction.APPROVE,
                esRotacionObligatoria=False,
            )

        dias = context.days_until_event
        dentro_del_plazo = dias <= config.dias_antes
        balance = context.user_balance

        return self.result(
            True,
            f"Rotación obligatoria asignada por administración ({dias} días hasta el evento)",
            suggested_action=SuggestedAction.APPROVE,
            esRotacionObligatoria=True,
            diasHastaEvento=dias,
            diasLimite=config.dias_antes,
            dentroDelPlazo=dentro_del_plazo,
            criterio=config.criterio,
            rotativosUsuario=balance.rotativos_tomados + balance.rotativos_obligatorios,
        )
