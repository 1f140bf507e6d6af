import math

from ...extensions import db
from ...models import Event, EventoTipo, Rotativo, RotativoEstado
from ..base import Rule
from ..configs import FuncionesPorTituloConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


def max_funciones_permitidas(total_funciones: int, config: FuncionesPorTituloConfig) -> int:
    """Hasta el umbral: cupo fijo. Por encima: porcentaje, redondeado hacia abajo, mínimo 1."""
    if total_funciones <= config.umbral_funciones:
        return config.max_hasta
    return max(1, math.floor(total_funciones * config.porcentaje_sobre / 100))


class FuncionesPorTituloRule(Rule):
    id = "R13_FUNCIONES_POR_TITULO"
    name = "Límite de funciones por título"
    description = (
        "Limita cuántas funciones de un mismo título puede pedir un integrante. "
        "Hasta 3 funciones: máximo 1. Más de 3 funciones: máximo 30%. Las "
        "solicitudes adicionales van a revisión del administrador."
    )
    category = RuleCategory.RESTRICCION
    priority = 16
    config_key = "FUNCIONES_POR_TITULO"
    config_class = FuncionesPorTituloConfig

    def validate(self, context: ValidationContext, config: FuncionesPorTituloConfig):
        if context.evento_tipo != EventoTipo.funcion:
            return self.result(True, "No aplica: el evento no es una función")

        evento = db.session.get(Event, context.event_id)
        if evento is None or evento.titulo_id is None:
            return self.result(True, "No aplica: el evento no tiene título asociado")

        total_funciones = Event.query.filter_by(
            titulo_id=evento.titulo_id, evento_tipo=EventoTipo.funcion
        ).count()
        if total_funciones == 0:
            return self.result(True, "No aplica: el título no tiene funciones")

        max_permitido = max_funciones_permitidas(total_funciones, config)
        funciones_del_usuario = (
            Rotativo.query.join(Event, Rotativo.event_id == Event.id)
            .filter(
                Rotativo.user_id == context.user_id,
                Rotativo.event_id != context.event_id,
                Rotativo.estado.in_([RotativoEstado.aprobado, RotativoEstado.pendiente]),
                Event.titulo_id == evento.titulo_id,
                Event.evento_tipo == EventoTipo.funcion,
            )
            .count()
        )
        titulo_name = evento.titulo.name
        details = dict(
            tituloId=evento.titulo_id,
            tituloName=titulo_name,
            totalFunciones=total_funciones,
            funcionesDelUsuario=funciones_del_usuario,
            maxPermitido=max_permitido,
            umbralAplicado="fijo" if total_funciones <= config.umbral_funciones else "porcentaje",
        )

        if funciones_del_usuario >= max_permitido:
            return self.result(
                False,
                f'Ya tenés {funciones_del_usuario} rotativo(s) en funciones de "{titulo_name}" '
                f"(máx: {max_permitido} de {total_funciones}). Solicitud enviada a revisión.",
                suggested_action=SuggestedAction.PENDING_ADMIN,
                **details,
            )

        return self.result(
            True,
            f'Podés solicitar rotativo en funciones de "{titulo_name}" '
            f"({funciones_del_usuario}/{max_permitido} usado)",
            **details,
        )
