"""
sqlbind: parameterized query execution with safe binding, transaction
batches and schema-checked row builders.
"""

from sqlbind.core.errors import (
    BindError,
    DatabaseConnectionError,
    ErrorKind,
    ExecutionError,
    MalformedQueryError,
    PrepareError,
    SchemaValidationError,
    SqlBindError,
    TokenMismatchError,
    TransactionStateError,
)
from sqlbind.core.param_type import BindKind, BindValue
from sqlbind.core.session import DatabaseSession
from sqlbind.engines import (
    QueryBuilder,
    QueryContext,
    QueryExecutor,
    SchemaCache,
    TransactionEngine,
)
from sqlbind.engines.sql import (
    BatchResult,
    Diagnostics,
    ExecutionOutcome,
    ExecutionResult,
    OutcomeKind,
    TransactionBatch,
    TransactionState,
)
from sqlbind.models import DataSource, ProductTypeEnum

__all__ = [
    "BatchResult",
    "BindError",
    "BindKind",
    "BindValue",
    "DatabaseConnectionError",
    "DatabaseSession",
    "DataSource",
    "Diagnostics",
    "ErrorKind",
    "ExecutionError",
    "ExecutionOutcome",
    "ExecutionResult",
    "MalformedQueryError",
    "OutcomeKind",
    "PrepareError",
    "ProductTypeEnum",
    "QueryBuilder",
    "QueryContext",
    "QueryExecutor",
    "SchemaCache",
    "SchemaValidationError",
    "SqlBindError",
    "TokenMismatchError",
    "TransactionBatch",
    "TransactionEngine",
    "TransactionState",
]
