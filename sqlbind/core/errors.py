"""
Error types raised and recorded by the query pipeline.

Every error carries an ``ErrorKind`` and a ``fatal`` flag. Inside the pipeline
most errors are recorded into the call's ``Diagnostics`` rather than raised to
the caller; only malformed input types and connection failures propagate.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a recorded or raised error."""

    MALFORMED_QUERY = "malformed_query"
    TOKEN_MISMATCH = "token_mismatch"
    BIND_FAILURE = "bind_failure"
    PREPARE_FAILURE = "prepare_failure"
    EXECUTION_FAILURE = "execution_failure"
    SCHEMA_VALIDATION = "schema_validation"
    TRANSACTION_STATE = "transaction_state"
    COMMIT_FAILURE = "commit_failure"
    ROLLBACK_FAILURE = "rollback_failure"
    CONNECTION_FAILURE = "connection_failure"


class SqlBindError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.EXECUTION_FAILURE
    fatal: bool = True


class MalformedQueryError(SqlBindError, ValueError):
    """Query text is not a string or is empty, or a batch is not a batch."""

    kind = ErrorKind.MALFORMED_QUERY


class TokenMismatchError(SqlBindError):
    """Query tokens without a matching parameter."""

    kind = ErrorKind.TOKEN_MISMATCH

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Missing {len(self.missing)} parameters: {', '.join(self.missing)}"
        )


class BindError(SqlBindError):
    """A value could not be bound to a statement token."""

    kind = ErrorKind.BIND_FAILURE
    fatal = False


class PrepareError(SqlBindError):
    kind = ErrorKind.PREPARE_FAILURE


class ExecutionError(SqlBindError):
    """The driver rejected a statement (or a commit/rollback)."""

    kind = ErrorKind.EXECUTION_FAILURE


class SchemaValidationError(SqlBindError):
    kind = ErrorKind.SCHEMA_VALIDATION


class TransactionStateError(SqlBindError):
    """Illegal transaction transition (begin while active, end while idle)."""

    kind = ErrorKind.TRANSACTION_STATE


class DatabaseConnectionError(SqlBindError, ConnectionError):
    """Opening (or reopening) the connection failed."""

    kind = ErrorKind.CONNECTION_FAILURE
