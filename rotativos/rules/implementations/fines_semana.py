from ..base import Rule
from ..configs import FinesSemanaConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class FinesSemanaRule(Rule):
    id = "R3_FINES_SEMANA"
    name = "Restricción de fines de semana"
    description = (
        "Cada integrante puede tomar como máximo un fin de semana por mes. Tomar "
        "solo el sábado ya cuenta como el fin de semana del mes. No aplica a bloques."
    )
    category = RuleCategory.RESTRICCION
    priority = 50
    config_key = "FINES_SEMANA_MAX"
    config_class = FinesSemanaConfig

    def validate(self, context: ValidationContext, config: FinesSemanaConfig):
        if context.is_part_of_block:
            return self.result(
                True,
                "Regla no aplica para bloques",
                suggested_action=SuggestedAction.APPROVE,
                esBloque=True,
                reglaAplicada=False,
            )

        if not context.is_weekend:
            return self.result(
                True,
                "No es fin de semana",
                suggested_action=SuggestedAction.APPROVE,
                esFinDeSemana=False,
                diaSemana=context.event_date.weekday(),
            )

        max_por_mes = config.max_por_mes
        mes = context.event_date.strftime("%Y-%m")
        usados = context.user_balance.fines_de_semana_mes.get(mes, 0)
        dentro_del_limite = usados < max_por_mes

        if dentro_del_limite:
            message = f"Fin de semana disponible ({usados}/{max_por_mes} usado(s) este mes)"
        else:
            message = f"Límite de fines de semana alcanzado ({usados}/{max_por_mes} este mes)"

        return self.result(
            dentro_del_limite,
            message,
            blocking=not dentro_del_limite,
            suggested_action=SuggestedAction.APPROVE if dentro_del_limite else SuggestedAction.REJECT,
            esFinDeSemana=True,
            mes=mes,
            usadosEsteMes=usados,
            maximoPorMes=max_por_mes,
            disponibles=max(0, max_por_mes - usados),
        )
