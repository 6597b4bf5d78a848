"""Repository layer for database operations.

Repositories run the queries and only ``flush()``; the request session owned
by ``get_db`` decides whether the transaction commits.
"""

from repositories.estabelecimento_repository import EstabelecimentoRepository
from repositories.lookup_repository import LookupConfig, LookupRepository
from repositories.utils import log_slow_query

__all__ = [
    "EstabelecimentoRepository",
    "LookupConfig",
    "LookupRepository",
    "log_slow_query",
]
