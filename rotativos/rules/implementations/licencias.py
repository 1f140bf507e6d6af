from ..base import Rule
from ..configs import LicenciasConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class LicenciasRule(Rule):
    id = "R9_LICENCIAS"
    name = "Licencias"
    description = (
        "Al reincorporarse de una licencia se suma al contador del integrante el "
        "promedio de rotativos que tomó el resto durante esos días."
    )
    category = RuleCategory.RESTRICCION
    priority = 70
    config_key = "LICENCIAS"
    config_class = LicenciasConfig
    informational = True

    def validate(self, context: ValidationContext, config: LicenciasConfig):
        balance = context.user_balance
        por_licencia = balance.rotativos_por_licencia

        if por_licencia <= 0:
            return self.result(
                True,
                "Sin rotativos sumados por licencia",
                suggested_action=SuggestedAction.APPROVE,
                rotativosPorLicencia=0,
                calculoPromedio=config.calculo_promedio,
            )

        total_con_licencia = balance.rotativos_tomados + por_licencia
        max_efectivo = balance.max_efectivo
        return self.result(
            True,
            f"{por_licencia} rotativo(s) sumado(s) por licencia",
            suggested_action=SuggestedAction.APPROVE,
            rotativosPorLicencia=por_licencia,
            rotativosTomados=balance.rotativos_tomados,
            totalConLicencia=total_con_licencia,
            maxProyectado=max_efectivo,
            porcentajeDeMaximo=(total_con_licencia / max_efectivo * 100) if max_efectivo else None,
            calculoPromedio=config.calculo_promedio,
        )
