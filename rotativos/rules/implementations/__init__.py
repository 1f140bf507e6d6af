from .cupo_diario import CupoDiarioRule
from .max_proyectado import MaxProyectadoRule
from .fines_semana import FinesSemanaRule
from .bloque_exclusivo import BloqueExclusivoRule
from .lista_espera import ListaEsperaRule
from .plazo_solicitud import PlazoSolicitudRule
from .rotacion_obligatoria import RotacionObligatoriaRule
from .cobertura_externa import CoberturaExternaRule
from .licencias import LicenciasRule
from .integrante_nuevo import IntegranteNuevoRule
from .alerta_cercania import AlertaCercaniaRule
from .ensayos_dobles import EnsayosDoblesRule
from .funciones_por_titulo import FuncionesPorTituloRule

# Orden de registro: desempata reglas con igual prioridad
ALL_RULES = [
    CupoDiarioRule,
    MaxProyectadoRule,
    FinesSemanaRule,
    BloqueExclusivoRule,
    ListaEsperaRule,
    PlazoSolicitudRule,
    RotacionObligatoriaRule,
    CoberturaExternaRule,
    LicenciasRule,
    IntegranteNuevoRule,
    AlertaCercaniaRule,
    EnsayosDoblesRule,
    FuncionesPorTituloRule,
]
