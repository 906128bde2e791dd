"""
Execute one parameterized statement against a DatabaseSession.

Pipeline: validate text -> verify tokens -> connect -> prepare -> bind ->
execute -> classify the outcome by the statement's leading keyword:

- SELECT / SHOW / WITH / DESCRIBE / EXPLAIN / PRAGMA: rows (list[dict])
- INSERT / UPDATE / DELETE / REPLACE: affected-row count, or the generated key
  when the text asks for one (RETURNING, LAST_INSERT_ID())
- anything else: OK (True)

Failures are recorded in the result's Diagnostics and the result is falsy.
"""

import logging
import re
from enum import Enum
from typing import Any, Mapping, NamedTuple

from sqlbind.core.config import settings
from sqlbind.core.driver import PreparedStatement, prepare
from sqlbind.core.errors import (
    ExecutionError,
    MalformedQueryError,
    PrepareError,
    TokenMismatchError,
)
from sqlbind.core.session import DatabaseSession
from sqlbind.models import ProductTypeEnum

from .binder import ParameterBinder
from .diagnostics import Diagnostics
from .parser import (
    TokenMatchStatus,
    remove_extra_params,
    statement_keyword,
    strip_literals,
    verify_tokens,
)

_log = logging.getLogger(__name__)

ROW_KEYWORDS = frozenset({"SELECT", "SHOW", "WITH", "DESCRIBE", "DESC", "EXPLAIN", "PRAGMA"})
DML_KEYWORDS = frozenset({"INSERT", "UPDATE", "DELETE", "REPLACE"})

_RETURNING = re.compile(r"\bRETURNING\b", re.IGNORECASE)
_LAST_INSERT_ID = re.compile(r"\bLAST_INSERT_ID\s*\(\s*\)", re.IGNORECASE)


class OutcomeKind(str, Enum):
    ROWS = "rows"
    AFFECTED = "affected"
    GENERATED_KEY = "generated_key"
    OK = "ok"


class ExecutionOutcome(NamedTuple):
    kind: OutcomeKind
    value: Any


class ExecutionResult(NamedTuple):
    """Outcome of one call plus its diagnostics. Falsy when the call failed."""

    outcome: ExecutionOutcome | None
    diagnostics: Diagnostics

    @property
    def ok(self) -> bool:
        return self.outcome is not None

    @property
    def value(self) -> Any:
        return self.outcome.value if self.outcome is not None else None

    def __bool__(self) -> bool:
        return self.ok


def check_query_text(query: Any) -> str:
    """Trimmed query text. Raises MalformedQueryError for non-strings and blanks."""
    if not isinstance(query, str):
        raise MalformedQueryError(
            "Error: Could not execute query because it is not a string."
        )
    query = query.strip()
    if not query:
        raise MalformedQueryError("Error: empty string passed as query.")
    return query


def reconcile_params(
    query: str, params: Mapping[str, Any] | None, diagnostics: Diagnostics
) -> dict[str, Any]:
    """
    Verify tokens against *params*; drop extras, raise TokenMismatchError on missing.
    """
    if not params:
        params = {}
    match = verify_tokens(query, params)
    if match.status is TokenMatchStatus.MISSING:
        raise TokenMismatchError(list(match.names))
    if match.status is TokenMatchStatus.EXTRA:
        diagnostics.trace(
            "Dropped extra parameters: " + ", ".join(f":{n}" for n in match.names), _log
        )
        return remove_extra_params(params, match.names)
    return dict(params)


def classify_outcome(statement: PreparedStatement) -> ExecutionOutcome:
    """Shape the executed statement's result by its leading keyword."""
    keyword = statement_keyword(statement.query)
    if keyword in ROW_KEYWORDS:
        return ExecutionOutcome(OutcomeKind.ROWS, statement.fetch_all())
    if keyword in DML_KEYWORDS:
        # Clauses inside string literals or comments do not count
        code = strip_literals(statement.query)
        if _RETURNING.search(code):
            rows = statement.fetch_all()
            key = next(iter(rows[0].values()), None) if rows else None
            return ExecutionOutcome(OutcomeKind.GENERATED_KEY, key)
        if _LAST_INSERT_ID.search(code):
            return ExecutionOutcome(OutcomeKind.GENERATED_KEY, statement.last_insert_id)
        return ExecutionOutcome(OutcomeKind.AFFECTED, statement.row_count)
    return ExecutionOutcome(OutcomeKind.OK, True)


class QueryExecutor:
    """Runs single statements on one session. See module docstring."""

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

    @property
    def product_type(self) -> ProductTypeEnum:
        return self.session.product_type

    def new_diagnostics(self) -> Diagnostics:
        return Diagnostics(trace_enabled=self.trace_enabled)

    def execute(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        *,
        close_after: bool = False,
        diagnostics: Diagnostics | None = None,
    ) -> ExecutionResult:
        """
        Execute *query* with named *params*.

        Raises MalformedQueryError when *query* is not a string and
        DatabaseConnectionError when no connection can be made; every other
        failure is recorded in the returned result's diagnostics.
        """
        diag = diagnostics if diagnostics is not None else self.new_diagnostics()

        if not isinstance(query, str):
            raise MalformedQueryError(
                "Error: Could not execute query because it is not a string."
            )
        try:
            query = check_query_text(query)
            bound_params = reconcile_params(query, params, diag)
        except (MalformedQueryError, TokenMismatchError) as e:
            _log.warning("%s", e)
            diag.record(e)
            return ExecutionResult(None, diag)

        conn = self.session.ensure_connection()
        diag.trace("Connection established.", _log)

        statement: PreparedStatement | None = None
        try:
            statement = prepare(conn, query, self.product_type)
            self.binder.bind_all(statement, bound_params, diag)
            statement.execute()
            diag.trace("Statement successfully executed.", _log)
            outcome = classify_outcome(statement)
            diag.trace(f"Return {outcome.kind.value} result.", _log)
            return ExecutionResult(outcome, diag)
        except (PrepareError, ExecutionError) as e:
            _log.warning("Statement failed: %s. SQL: %s", e, query)
            diag.record(e)
            return ExecutionResult(None, diag)
        finally:
            if statement is not None:
                statement.close()
            if close_after:
                self.session.disconnect()
                diag.trace("Connection closed.", _log)

    def fetch_rows(
        self, query: str, params: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """
        Run a row-returning statement and return its rows.

        Raises ExecutionError (with the recorded messages) when it fails or
        does not return rows.
        """
        result = self.execute(query, params)
        if not result:
            raise ExecutionError("; ".join(result.diagnostics.messages))
        if result.outcome.kind is not OutcomeKind.ROWS:
            raise ExecutionError(f"statement did not return rows: {query}")
        return result.value


__all__ = [
    "DML_KEYWORDS",
    "ROW_KEYWORDS",
    "ExecutionOutcome",
    "ExecutionResult",
    "OutcomeKind",
    "QueryExecutor",
    "check_query_text",
    "classify_outcome",
    "reconcile_params",
]
