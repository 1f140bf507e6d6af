import math

from ..base import Rule
from ..configs import AlertaUmbralConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext

NINGUNA = "NINGUNA"
CERCANIA = "CERCANIA"
LIMITE = "LIMITE"
EXCESO = "EXCESO"


class AlertaCercaniaRule(Rule):
    id = "R11_ALERTA_CERCANIA"
    name = "Alerta de cercanía al máximo"
    description = (
        "Avisa al integrante y al administrador cuando se alcanza el umbral "
        "configurable (por defecto 90%) del máximo proyectado. Nunca bloquea."
    )
    category = RuleCategory.ALERTA
    priority = 200
    config_key = "ALERTA_UMBRAL"
    config_class = AlertaUmbralConfig

    def validate(self, context: ValidationContext, config: AlertaUmbralConfig):
        umbral = config.umbral
        balance = context.user_balance
        max_efectivo = balance.max_efectivo
        total_actual = balance.total_actual
        total_con_nuevo = total_actual + 1

        if max_efectivo > 0:
            porcentaje_actual = total_actual / max_efectivo * 100
            porcentaje_con_nuevo = total_con_nuevo / max_efectivo * 100
        else:
            porcentaje_actual = porcentaje_con_nuevo = 100.0

        supera_maximo = total_con_nuevo > max_efectivo
        if supera_maximo:
            nivel = EXCESO
            message = f"ALERTA: Excedes el máximo proyectado ({porcentaje_con_nuevo:.1f}%)"
        elif porcentaje_con_nuevo >= umbral:
            nivel = LIMITE
            message = f"ALERTA: Alcanzarás el {umbral:g}% del máximo ({porcentaje_con_nuevo:.1f}%)"
        elif porcentaje_actual >= umbral:
            nivel = CERCANIA
            message = f"AVISO: Ya estás en {porcentaje_actual:.1f}% del máximo"
        else:
            nivel = NINGUNA
            message = f"Balance: {porcentaje_actual:.1f}% del máximo proyectado"

        return self.result(
            True,
            message,
            suggested_action=SuggestedAction.APPROVE,
            umbral=umbral,
            porcentajeActual=porcentaje_actual,
            porcentajeConNuevo=porcentaje_con_nuevo,
            totalActual=total_actual,
            totalConNuevo=total_con_nuevo,
            maxProyectado=max_efectivo,
            superaUmbral=porcentaje_con_nuevo >= umbral,
            superaMaximo=supera_maximo,
            nivelAlerta=nivel,
            restantesHastaMaximo=max(0, max_efectivo - total_con_nuevo),
            restantesHastaUmbral=max(0, math.floor(max_efectivo * umbral / 100) - total_actual),
        )
