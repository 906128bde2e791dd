"""
Parameterized SQL pipeline: token verification, binding, execution,
transaction batches and schema-checked builders.
"""

from sqlbind.engines.sql.binder import ParameterBinder
from sqlbind.engines.sql.builder import QueryBuilder
from sqlbind.engines.sql.diagnostics import DiagnosticEntry, Diagnostics
from sqlbind.engines.sql.executor import (
    ExecutionOutcome,
    ExecutionResult,
    OutcomeKind,
    QueryExecutor,
)
from sqlbind.engines.sql.parser import (
    TokenMatch,
    TokenMatchStatus,
    parse_parameters,
    split_statements,
    verify_tokens,
)
from sqlbind.engines.sql.schema import SchemaCache
from sqlbind.engines.sql.transaction import (
    BatchResult,
    TransactionBatch,
    TransactionEngine,
    TransactionState,
)

__all__ = [
    "BatchResult",
    "DiagnosticEntry",
    "Diagnostics",
    "ExecutionOutcome",
    "ExecutionResult",
    "OutcomeKind",
    "ParameterBinder",
    "QueryBuilder",
    "QueryExecutor",
    "SchemaCache",
    "TokenMatch",
    "TokenMatchStatus",
    "TransactionBatch",
    "TransactionEngine",
    "TransactionState",
    "parse_parameters",
    "split_statements",
    "verify_tokens",
]
