from collections import defaultdict

from ...extensions import db
from ...models import Event, EventoTipo, Rotativo, RotativoEstado
from ..base import Rule
from ..configs import EnsayosDoblesConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class EnsayosDoblesRule(Rule):
    id = "R12_ENSAYOS_DOBLES"
    name = "Límite en días con ensayos dobles"
    description = (
        "En días con ensayo doble del mismo título, cada integrante solo puede pedir "
        "rotativo para un ensayo en uno de esos días. Las solicitudes siguientes van "
        "a revisión del administrador."
    )
    category = RuleCategory.RESTRICCION
    priority = 15
    config_key = "ENSAYOS_DOBLES"
    config_class = EnsayosDoblesConfig

    def validate(self, context: ValidationContext, config: EnsayosDoblesConfig):
        if context.evento_tipo != EventoTipo.ensayo:
            return self.result(True, "No aplica: el evento no es un ensayo")

        evento = db.session.get(Event, context.event_id)
        if evento is None or evento.titulo_id is None:
            return self.result(True, "No aplica: el evento no tiene título asociado")

        ensayos = (
            Event.query.filter_by(titulo_id=evento.titulo_id, evento_tipo=EventoTipo.ensayo)
            .all()
        )
        por_fecha = defaultdict(list)
        for ensayo in ensayos:
            por_fecha[ensayo.date.date()].append(ensayo.id)
        dias_dobles = {fecha: ids for fecha, ids in por_fecha.items() if len(ids) > 1}

        if not dias_dobles:
            return self.result(True, "No aplica: el título no tiene días con ensayos dobles")
        if evento.date.date() not in dias_dobles:
            return self.result(True, "No aplica: este ensayo no está en un día doble")

        ids_dias_dobles = [event_id for ids in dias_dobles.values() for event_id in ids]
        rotativos = (
            Rotativo.query.filter(
                Rotativo.user_id == context.user_id,
                Rotativo.event_id.in_(ids_dias_dobles),
                Rotativo.event_id != context.event_id,
                Rotativo.estado.in_([RotativoEstado.aprobado, RotativoEstado.pendiente]),
            )
            .all()
        )
        cantidad = len(rotativos)
        titulo_name = evento.titulo.name
        details = dict(
            tituloId=evento.titulo_id,
            tituloName=titulo_name,
            diasDobles=len(dias_dobles),
            rotativosEnDiasDobles=cantidad,
            maxPermitido=config.max_rotativos_por_titulo,
        )

        if cantidad >= config.max_rotativos_por_titulo:
            fechas = sorted(f"{r.event.date.day}/{r.event.date.month}" for r in rotativos)
            return self.result(
                False,
                f'Ya tenés {cantidad} rotativo(s) en días con ensayos dobles de "{titulo_name}". '
                "Solicitud enviada a revisión.",
                suggested_action=SuggestedAction.PENDING_ADMIN,
                fechasConRotativo=fechas,
                **details,
            )

        return self.result(
            True,
            f'Podés solicitar rotativo en días dobles de "{titulo_name}" '
            f"({cantidad}/{config.max_rotativos_por_titulo} usado)",
            **details,
        )
