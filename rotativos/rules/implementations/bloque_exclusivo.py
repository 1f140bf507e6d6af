from ...extensions import db
from ...models import Block, BlockEstado, RotativoTipo
from ..base import Rule
from ..configs import BloqueExclusivoConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class BloqueExclusivoRule(Rule):
    id = "R4_BLOQUE_EXCLUSIVO"
    name = "Bloque exclusivo"
    description = (
        "Cada integrante puede solicitar un bloque por temporada. Si alguien pide "
        "un bloque, nadie más puede pedirlo. Un bloque iniciado no se puede "
        "cancelar ni reasignar. Cada función del bloque cuenta para el máximo anual."
    )
    category = RuleCategory.BLOQUE
    priority = 20
    config_key = "BLOQUE_EXCLUSIVO"
    config_class = BloqueExclusivoConfig

    def validate(self, context: ValidationContext, config: BloqueExclusivoConfig):
        if context.request_type != RotativoTipo.voluntario or not context.block_id:
            return self.result(
                True,
                "No es solicitud de bloque",
                suggested_action=SuggestedAction.APPROVE,
                esSolicitudBloque=False,
            )

        bloque = db.session.get(Block, context.block_id)
        if bloque is None:
            return self.result(
                False,
                "Bloque no encontrado",
                blocking=True,
                suggested_action=SuggestedAction.REJECT,
                blockId=context.block_id,
                error="NOT_FOUND",
            )

        # El dueño del bloque sigue pidiendo los eventos de su propio bloque
        if bloque.assigned_to_id == context.user_id:
            en_curso = (
                bloque.estado == BlockEstado.en_curso
                or bloque.start_date <= context.request_date.date()
            )
            return self.result(
                True,
                "Bloque en curso - continuando con tu asignación" if en_curso
                else f'Bloque "{bloque.name}" asignado a vos',
                suggested_action=SuggestedAction.APPROVE,
                blockId=bloque.id,
                blockName=bloque.name,
                estado=bloque.estado.value,
                enCurso=en_curso,
            )

        if context.user_balance.bloque_usado:
            return self.result(
                False,
                f"Ya utilizaste tu bloque de esta temporada (máximo {config.max_por_persona} por año)",
                blocking=True,
                suggested_action=SuggestedAction.REJECT,
                bloqueUsado=True,
                maxPorPersona=config.max_por_persona,
            )

        if bloque.assigned_to_id is not None:
            asignado = bloque.assigned_to.name if bloque.assigned_to else "otro integrante"
            return self.result(
                False,
                f"Este bloque ya fue solicitado por {asignado}",
                blocking=True,
                suggested_action=SuggestedAction.REJECT,
                blockId=bloque.id,
                blockName=bloque.name,
                assignedToId=bloque.assigned_to_id,
                assignedToName=asignado,
                estado=bloque.estado.value,
            )

        return self.result(
            True,
            f'Bloque "{bloque.name}" disponible',
            suggested_action=SuggestedAction.APPROVE,
            blockId=bloque.id,
            blockName=bloque.name,
            startDate=bloque.start_date,
            endDate=bloque.end_date,
            estado=bloque.estado.value,
        )
