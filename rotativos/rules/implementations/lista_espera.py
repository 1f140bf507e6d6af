from ..base import Rule
from ..configs import ListaEsperaConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class ListaEsperaRule(Rule):
    id = "R5_LISTA_ESPERA"
    name = "Lista de espera FIFO"
    description = (
        "Sin cupo disponible, las solicitudes entran a una lista de espera por orden "
        "de llegada. No vence y se purga al fin de temporada. El primero de la lista "
        "pasa al lugar liberado cuando hay cancelaciones."
    )
    category = RuleCategory.CUPO
    priority = 15
    config_key = "LISTA_ESPERA"
    config_class = ListaEsperaConfig
    informational = True

    def validate(self, context: ValidationContext, config: ListaEsperaConfig):
        # La decisión de ir a lista de espera la toma el cupo diario
        event_data = context.event_data
        en_espera = event_data.waiting_list_length
        cupo_total = event_data.cupo_total

        if cupo_total is None or event_data.current_approved < cupo_total:
            return self.result(
                True,
                "Hay cupo disponible, no se requiere lista de espera",
                suggested_action=SuggestedAction.APPROVE,
                hayListaEspera=en_espera > 0,
                personasEnEspera=en_espera,
                cupoDisponible=None if cupo_total is None else cupo_total - event_data.current_approved,
            )

        posicion_estimada = en_espera + 1
        return self.result(
            True,
            f"Lista de espera activa. Tu posición estimada: #{posicion_estimada}" if en_espera
            else "Serás el primero en la lista de espera",
            suggested_action=SuggestedAction.WAITING_LIST,
            tipoLista=config.tipo,
            vencimiento=config.vencimiento,
            personasEnEspera=en_espera,
            posicionEstimada=posicion_estimada,
            cupoTotal=cupo_total,
            cupoUsado=event_data.current_approved,
        )
