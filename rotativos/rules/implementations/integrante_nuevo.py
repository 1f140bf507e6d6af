from ..base import Rule
from ..configs import IntegranteNuevoConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class IntegranteNuevoRule(Rule):
    id = "R10_INTEGRANTE_NUEVO"
    name = "Integrante nuevo"
    description = (
        "Si un integrante ingresa con la temporada empezada, su máximo proyectado es "
        "el promedio de rotativos del resto al momento del ingreso. El administrador "
        "puede modificarlo."
    )
    category = RuleCategory.RESTRICCION
    priority = 80
    config_key = "INTEGRANTE_NUEVO"
    config_class = IntegranteNuevoConfig
    informational = True

    def validate(self, context: ValidationContext, config: IntegranteNuevoConfig):
        balance = context.user_balance
        if balance.fecha_ingreso is None:
            return self.result(
                True,
                "No es integrante nuevo",
                suggested_action=SuggestedAction.APPROVE,
                esIntegranteNuevo=False,
            )

        ajustado = balance.max_ajustado_manual is not None
        max_efectivo = balance.max_efectivo
        if ajustado:
            message = f"Integrante nuevo con máximo ajustado por admin: {max_efectivo}"
        else:
            message = f"Integrante nuevo con máximo basado en promedio: {max_efectivo}"

        return self.result(
            True,
            message,
            suggested_action=SuggestedAction.APPROVE,
            esIntegranteNuevo=True,
            fechaIngreso=balance.fecha_ingreso,
            diasDesdeIngreso=(context.request_date.date() - balance.fecha_ingreso).days,
            maxProyectadoOriginal=balance.max_proyectado,
            maxAjustadoManual=balance.max_ajustado_manual,
            maxEfectivo=max_efectivo,
            fueAjustadoPorAdmin=ajustado,
            usarPromedio=config.usar_promedio,
            permitirOverride=config.admin_override,
        )
