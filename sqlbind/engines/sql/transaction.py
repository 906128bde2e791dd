"""
Run an ordered batch of statements as one transaction.

Transaction states: IDLE -> ACTIVE -> COMMITTED | ROLLED_BACK. begin() while
active and commit()/rollback() while not active raise TransactionStateError.

run_batch() is all-or-nothing: a missing parameter or a driver error aborts
the batch and rolls back; bind failures (warnings) roll back at the end
instead of committing. With ``dry_run`` the batch always rolls back and the
per-statement row counts are still returned.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from enum import Enum
from typing import Any, NamedTuple

from sqlbind.core.config import settings
from sqlbind.core.driver import (
    DRIVER_ERRORS,
    begin_transaction,
    commit_transaction,
    driver_error_message,
    in_transaction,
    prepare,
    rollback_transaction,
)
from sqlbind.core.errors import (
    ErrorKind,
    ExecutionError,
    MalformedQueryError,
    PrepareError,
    TokenMismatchError,
    TransactionStateError,
)
from sqlbind.core.session import DatabaseSession

from .binder import ParameterBinder
from .diagnostics import Diagnostics
from .executor import reconcile_params
from .parser import split_statements

_log = logging.getLogger(__name__)


class TransactionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class BatchEntry(NamedTuple):
    query: str
    params: dict[str, Any]


class TransactionBatch:
    """
    Ordered (query, params) entries.

    Built from a sequence of pairs or a ``{query: params}`` mapping. A batch
    of one entry whose query holds several statements expands into one entry
    per statement, all sharing the same params.
    """

    def __init__(self, entries: Iterable[BatchEntry | tuple[str, Any]]) -> None:
        self.entries: list[BatchEntry] = []
        for entry in entries:
            if not isinstance(entry, (tuple, list)) or len(entry) != 2:
                raise MalformedQueryError(
                    "Warning: transactions must be a sequence of (query, params) pairs."
                )
            query, params = entry
            if not isinstance(query, str):
                raise MalformedQueryError(
                    "Error: Could not execute query because it is not a string."
                )
            if params is not None and not isinstance(params, Mapping):
                raise MalformedQueryError(
                    f"Error: parameters for {query!r} must be a mapping."
                )
            self.entries.append(BatchEntry(query, dict(params or {})))

    @classmethod
    def coerce(cls, queries: Any) -> "TransactionBatch":
        if isinstance(queries, TransactionBatch):
            return queries
        if isinstance(queries, Mapping):
            return cls(queries.items())
        if isinstance(queries, Sequence) and not isinstance(queries, (str, bytes)):
            return cls(queries)
        raise MalformedQueryError("Warning: transactions must be an array of queries.")

    def expanded(self) -> "TransactionBatch":
        if len(self.entries) != 1:
            return self
        query, params = self.entries[0]
        statements = split_statements(query)
        if len(statements) <= 1:
            return self
        return TransactionBatch(BatchEntry(sql, dict(params)) for sql in statements)

    def __iter__(self) -> Iterator[BatchEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class BatchResult(NamedTuple):
    """Per-statement row counts plus diagnostics. Falsy when the batch failed."""

    row_counts: list[int] | None
    diagnostics: Diagnostics

    @property
    def ok(self) -> bool:
        return self.row_counts is not None

    def __bool__(self) -> bool:
        return self.ok


class TransactionEngine:
    def __init__(
        self,
        session: DatabaseSession,
        *,
        trace: bool | None = None,
        binder: ParameterBinder | None = None,
    ) -> None:
        self.session = session
        self.trace_enabled = settings.DEBUG_TRACE if trace is None else trace
        self.binder = binder or ParameterBinder()
        self._state = TransactionState.IDLE

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_active(self) -> bool:
        """
        True while the driver reports an open transaction on the session.

        A transaction begun here but lost with its connection (``close_after``,
        a dead connection dropped on ping) is marked ROLLED_BACK.
        """
        conn = self.session.connection
        try:
            active = conn is not None and in_transaction(conn, self.session.product_type)
        except DRIVER_ERRORS as e:
            _log.debug("transaction status unavailable: %s", e)
            active = False
        if self._state is TransactionState.ACTIVE and not active:
            _log.warning("transaction ended with its connection, marking it rolled back")
            self._state = TransactionState.ROLLED_BACK
        return active

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def begin(self) -> None:
        if self.is_active:
            raise TransactionStateError("Warning: transaction is currently active.")
        conn = self.session.ensure_connection()
        try:
            begin_transaction(conn, self.session.product_type)
        except DRIVER_ERRORS as e:
            raise ExecutionError(
                f"Error: could not begin transaction: {driver_error_message(e)}"
            ) from e
        self._state = TransactionState.ACTIVE

    def commit(self) -> None:
        """Commit; the transaction stays ACTIVE if the driver refuses."""
        conn = self._active_connection()
        try:
            commit_transaction(conn, self.session.product_type)
        except DRIVER_ERRORS as e:
            raise ExecutionError(driver_error_message(e)) from e
        self._state = TransactionState.COMMITTED

    def rollback(self) -> None:
        conn = self._active_connection()
        try:
            rollback_transaction(conn, self.session.product_type)
        except DRIVER_ERRORS as e:
            raise ExecutionError(driver_error_message(e)) from e
        finally:
            self._state = TransactionState.ROLLED_BACK

    def _active_connection(self) -> Any:
        if not self.is_active:
            raise TransactionStateError("There is no active transaction.")
        conn = self.session.connection
        if conn is None:
            raise TransactionStateError("There is no active transaction.")
        return conn

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def run_batch(self, queries: Any, *, dry_run: bool = False) -> BatchResult:
        """
        Execute *queries* in order inside one transaction.

        Returns the affected-row count of every statement on success (and
        always for a dry run whose rollback succeeded).
        """
        diag = Diagnostics(trace_enabled=self.trace_enabled)

        diag.trace("Check transaction queries is not empty.", _log)
        try:
            batch = TransactionBatch.coerce(queries)
        except MalformedQueryError as e:
            diag.record(e)
            return BatchResult(None, diag)
        if not batch:
            diag.error(
                ErrorKind.MALFORMED_QUERY,
                "Error: transaction failed because no queries were passed.",
            )
            return BatchResult(None, diag)
        batch = batch.expanded()

        diag.trace("Check no transaction is currently active.", _log)
        try:
            self.begin()
        except (TransactionStateError, ExecutionError) as e:
            diag.record(e)
            return BatchResult(None, diag)
        diag.trace("Begin new transaction.", _log)

        conn = self.session.connection
        if not in_transaction(conn, self.session.product_type):
            self._state = TransactionState.IDLE
            diag.error(
                ErrorKind.TRANSACTION_STATE,
                "Error: transaction was requested but does not exist.",
            )
            return BatchResult(None, diag)

        row_counts: list[int] = []
        for index, entry in enumerate(batch, start=1):
            try:
                row_counts.append(self._run_statement(conn, entry, diag))
            except (TokenMismatchError, PrepareError, ExecutionError) as e:
                _log.warning("Batch statement %d failed: %s", index, e)
                diag.record(e)
                self._rollback_recorded(diag)
                return BatchResult(None, diag)

        diag.trace("Attempting to end/commit transaction...", _log)
        if dry_run:
            diag.trace("Test mode enabled, rolling back transaction.", _log)
            if not self._rollback_recorded(diag, "Error: test transaction could not be rolled back"):
                return BatchResult(None, diag)
            return BatchResult(row_counts, diag)

        if diag.has_warnings or diag.has_errors:
            diag.trace("Errors present in error log, rolling back transaction.", _log)
            self._rollback_recorded(diag)
            return BatchResult(None, diag)

        try:
            self.commit()
        except (ExecutionError, TransactionStateError) as e:
            _log.warning("Commit failed: %s", e)
            diag.error(ErrorKind.COMMIT_FAILURE, f"Error: could not commit changes: {e}")
            self._rollback_recorded(
                diag, "Error: could not commit, and rollback also failed"
            )
            return BatchResult(None, diag)

        diag.trace("Transaction completed successfully.", _log)
        return BatchResult(row_counts, diag)

    def _run_statement(self, conn: Any, entry: BatchEntry, diag: Diagnostics) -> int:
        params = reconcile_params(entry.query, entry.params, diag)
        statement = prepare(conn, entry.query, self.session.product_type)
        try:
            self.binder.bind_all(statement, params, diag)
            statement.execute()
            diag.trace(f"Statement executed: {entry.query}", _log)
            return statement.row_count
        finally:
            statement.close()

    def _rollback_recorded(
        self, diag: Diagnostics, failure_message: str = "Error: failed to rollback the transaction"
    ) -> bool:
        """Roll back, recording a failure instead of raising it."""
        try:
            self.rollback()
        except TransactionStateError:
            # The driver already ended it (connection lost or automatic rollback)
            diag.trace("Transaction already ended, nothing to roll back.", _log)
            return True
        except ExecutionError as e:
            _log.error("%s: %s", failure_message, e)
            diag.error(ErrorKind.ROLLBACK_FAILURE, f"{failure_message}: {e}")
            return False
        diag.trace("Transaction rolled back successfully.", _log)
        return True
