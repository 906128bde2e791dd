"""
Engines: the parameterized SQL pipeline and the QueryContext facade.
"""

from sqlbind.engines.context import QueryContext
from sqlbind.engines.sql import (
    QueryBuilder,
    QueryExecutor,
    SchemaCache,
    TransactionEngine,
)

__all__ = [
    "QueryContext",
    "QueryExecutor",
    "TransactionEngine",
    "SchemaCache",
    "QueryBuilder",
]
