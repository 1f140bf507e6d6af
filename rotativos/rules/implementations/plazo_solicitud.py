from ..base import Rule
from ..configs import PlazoSolicitudConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class PlazoSolicitudRule(Rule):
    id = "R6_PLAZO_SOLICITUD"
    name = "Plazo de solicitud"
    description = (
        "Las solicitudes hasta el día anterior pueden aprobarse automáticamente si "
        "hay cupo. Las del mismo día de la función quedan pendientes de aprobación "
        "del administrador. No se aceptan fechas pasadas."
    )
    category = RuleCategory.RESTRICCION
    priority = 60
    config_key = "PLAZO_SOLICITUD"
    config_class = PlazoSolicitudConfig

    def validate(self, context: ValidationContext, config: PlazoSolicitudConfig):
        dias = context.days_until_event

        if dias < 0:
            return self.result(
                False,
                "No se pueden solicitar rotativos para fechas pasadas",
                blocking=True,
                suggested_action=SuggestedAction.REJECT,
                diasAnticipacion=dias,
                fechaEvento=context.event_date.date(),
                fechaSolicitud=context.request_date.date(),
                esFechaPasada=True,
            )

        if dias == 0:
            accion = config.mismo_dia
            requiere_aprobacion = accion != SuggestedAction.APPROVE
            return self.result(
                not requiere_aprobacion,
                "Solicitud del mismo día - requiere aprobación manual del administrador"
                if requiere_aprobacion else "Solicitud del mismo día",
                suggested_action=accion,
                diasAnticipacion=0,
                esMismoDia=True,
                requiereAprobacion=requiere_aprobacion,
            )

        accion = config.dia_anterior
        requiere_aprobacion = accion != SuggestedAction.APPROVE
        return self.result(
            not requiere_aprobacion,
            f"Solicitud con {dias} día(s) de anticipación",
            suggested_action=accion,
            diasAnticipacion=dias,
            esMismoDia=False,
            requiereAprobacion=requiere_aprobacion,
        )
