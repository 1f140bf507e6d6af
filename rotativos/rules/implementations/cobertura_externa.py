from ..base import Rule
from ..configs import CoberturaExternaConfig
from ..types import RuleCategory, SuggestedAction, ValidationContext


class CoberturaExternaRule(Rule):
    """Informativa: las coberturas las gestiona el administrador a mano."""

    id = "R8_COBERTURA_EXTERNA"
    name = "Cobertura por causas externas"
    description = (
        "Cuando alguien no puede asistir se prioriza, para cubrir, a quienes más "
        "rotativos hayan tomado. La gestión es manual por parte del administrador."
    )
    category = RuleCategory.ROTACION
    priority = 35
    config_key = "COBERTURA_EXTERNA"
    config_class = CoberturaExternaConfig
    informational = True

    def validate(self, context: ValidationContext, config: CoberturaExternaConfig):
        total = context.user_balance.total_actual
        promedio = context.season_data.promedio_rotativos
        sobre_promedio = total > promedio

        return self.result(
            True,
            "Gestión manual por admin - se prioriza a quienes más rotativos hayan tomado",
            suggested_action=SuggestedAction.APPROVE,
            gestionManual=True,
            criterio=config.criterio,
            totalUsuario=total,
            promedioGrupo=promedio,
            sobrePromedio=sobre_promedio,
        )
