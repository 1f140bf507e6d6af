from ..base import Rule
from ..configs import CupoDiarioConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class CupoDiarioRule(Rule):
    id = "R1_CUPO_DIARIO"
    name = "Cupo diario por tipo de evento"
    description = (
        "Limita la cantidad de rotativos por evento según el tipo de título. "
        "Ópera: 4 cupos, Ballet: 4 cupos, Concierto: 2 cupos. Un cupo propio "
        "del evento tiene precedencia."
    )
    category = RuleCategory.CUPO
    priority = 10
    config_key = "CUPO_DIARIO"
    config_class = CupoDiarioConfig

    def validate(self, context: ValidationContext, config: CupoDiarioConfig):
        cupo_total = context.event_data.cupo_total
        if cupo_total is None:
            cupo_total = config.for_type(context.event_type)
        usados = context.event_data.current_approved
        hay_lugar = usados < cupo_total

        if hay_lugar:
            message = f"Hay lugar disponible ({usados}/{cupo_total})"
        else:
            message = f"Cupo lleno para {context.event_type} ({usados}/{cupo_total})"

        return self.result(
            hay_lugar,
            message,
            blocking=not hay_lugar,
            suggested_action=SuggestedAction.APPROVE if hay_lugar else SuggestedAction.WAITING_LIST,
            eventType=context.event_type,
            cupoTotal=cupo_total,
            cupoUsado=usados,
            cupoDisponible=max(0, cupo_total - usados),
        )
