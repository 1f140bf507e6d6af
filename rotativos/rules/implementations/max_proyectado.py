from ...models import RotativoTipo
from ..base import Rule
from ..configs import MaxProyectadoConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class MaxProyectadoRule(Rule):
    id = "R2_MAX_PROYECTADO"
    name = "Máximo proyectado anual"
    description = (
        "Límite anual de rotativos por integrante: suma de los cupos de todos los "
        "eventos de la temporada dividida por la cantidad de integrantes. Quien ya "
        "superó su máximo no puede pedir más; quien lo excedería con esta solicitud "
        "queda pendiente de aprobación. La rotación obligatoria puede excederlo."
    )
    category = RuleCategory.RESTRICCION
    priority = 40
    config_key = "MAX_PROYECTADO"
    config_class = MaxProyectadoConfig

    def validate(self, context: ValidationContext, config: MaxProyectadoConfig):
        balance = context.user_balance
        max_efectivo = balance.max_efectivo
        total_actual = balance.total_actual
        total_con_nuevo = total_actual + 1

        if context.request_type == RotativoTipo.obligatorio:
            return self.result(
                True,
                "Rotación obligatoria puede exceder máximo proyectado sin límite",
                suggested_action=SuggestedAction.APPROVE,
                totalActual=total_actual,
                maxProyectado=max_efectivo,
                esRotacionObligatoria=True,
            )

        porcentaje_usado = (total_con_nuevo / max_efectivo * 100) if max_efectivo > 0 else 100.0
        details = dict(
            rotativosTomados=balance.rotativos_tomados,
            rotativosObligatorios=balance.rotativos_obligatorios,
            rotativosPorLicencia=balance.rotativos_por_licencia,
            totalActual=total_actual,
            totalConNuevo=total_con_nuevo,
            maxProyectado=max_efectivo,
            maxOriginal=balance.max_proyectado,
            maxAjustado=balance.max_ajustado_manual,
            porcentajeUsado=porcentaje_usado,
        )

        if total_actual > max_efectivo:
            return self.result(
                False,
                f"Ya superaste el máximo proyectado ({total_actual}/{max_efectivo})",
                blocking=True,
                suggested_action=SuggestedAction.REJECT,
                **details,
            )

        if total_con_nuevo <= max_efectivo:
            return self.result(
                True,
                f"Dentro del límite ({total_con_nuevo}/{max_efectivo}) - {porcentaje_usado:.1f}%",
                suggested_action=SuggestedAction.APPROVE,
                **details,
            )

        return self.result(
            False,
            f"Excede máximo proyectado ({total_con_nuevo}/{max_efectivo}) - {porcentaje_usado:.1f}%",
            suggested_action=SuggestedAction.PENDING_ADMIN,
            **details,
        )
