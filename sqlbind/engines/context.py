"""
QueryContext: one session wired to executor, transactions, schema and builders.
"""

import logging
from typing import Any, Mapping

from sqlbind.core.session import DatabaseSession
from sqlbind.models import DataSource

from .sql import (
    BatchResult,
    ExecutionResult,
    QueryBuilder,
    QueryExecutor,
    SchemaCache,
    TransactionEngine,
)

_log = logging.getLogger(__name__)


class QueryContext:
    """
    Owns a DatabaseSession and exposes the pipeline on it:
    execute, run_batch, insert_row, update_row, delete_row, and
    ``tx`` / ``schema`` / ``builder`` for finer control.

    Use as a context manager so the connection is released on every exit path::

        with QueryContext(datasource) as db:
            db.execute("SELECT * FROM users WHERE id = :id", {"id": 1})
    """

    def __init__(
        self,
        datasource: DataSource | dict[str, Any] | None = None,
        *,
        session: DatabaseSession | None = None,
        trace: bool | None = None,
    ) -> None:
        if session is None:
            session = DatabaseSession(
                datasource if datasource is not None else DataSource.from_settings()
            )
        self.session = session
        self.executor = QueryExecutor(session, trace=trace)
        self.tx = TransactionEngine(session, trace=trace)
        self.schema = SchemaCache(self.executor)
        self.builder = QueryBuilder(self.executor, self.schema)

    def __enter__(self) -> "QueryContext":
        self.session.open()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Roll back a transaction left open, then release the connection."""
        try:
            if self.session.connected and self.tx.is_active:
                _log.warning("closing session with an open transaction, rolling back")
                self.tx.rollback()
        finally:
            self.session.close()
            self.schema.invalidate()

    def execute(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        *,
        close_after: bool = False,
    ) -> ExecutionResult:
        return self.executor.execute(query, params, close_after=close_after)

    def run_batch(self, queries: Any, *, dry_run: bool = False) -> BatchResult:
        return self.tx.run_batch(queries, dry_run=dry_run)

    def insert_row(
        self, table: str, params: Mapping[str, Any], upsert: bool = True
    ) -> ExecutionResult:
        return self.builder.insert_row(table, params, upsert)

    def update_row(
        self, table: str, params: Mapping[str, Any], key_params: Mapping[str, Any]
    ) -> ExecutionResult:
        return self.builder.update_row(table, params, key_params)

    def delete_row(self, table: str, params: Mapping[str, Any]) -> ExecutionResult:
        return self.builder.delete_row(table, params)
