"""API route modules."""

from .estabelecimento_routes import router as estabelecimentos_router
from .habilitacao_routes import router as habilitacao_router
from .health_routes import router as health_router
from .lookup_routes import (
    cbo_router,
    componentes_router,
    escolaridades_router,
    estados_router,
    natureza_router,
    paises_router,
    racas_router,
    tipo_estabelecimento_router,
    turnos_router,
)
from .municipio_routes import router as municipios_router
from .qualificacao_routes import router as qualificacao_router
from .relatorio_routes import router as relatorio_router

__all__ = [
    "health_router",
    "componentes_router",
    "tipo_estabelecimento_router",
    "natureza_router",
    "turnos_router",
    "escolaridades_router",
    "racas_router",
    "paises_router",
    "estados_router",
    "municipios_router",
    "cbo_router",
    "habilitacao_router",
    "qualificacao_router",
    "relatorio_router",
    "estabelecimentos_router",
]
