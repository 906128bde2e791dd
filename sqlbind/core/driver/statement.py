"""
Prepared statement over a DB-API connection.

DB-API drivers have no separate prepare/bind calls, so PreparedStatement keeps
the translated SQL and the bound values, and hands both to the cursor on
execute(). Query text always uses ``:name`` tokens; they are rewritten to the
driver paramstyle here.
"""

import logging
from typing import Any

from sqlbind.core.errors import ExecutionError, PrepareError
from sqlbind.core.param_type import BindKind, BindValue
from sqlbind.models import ProductTypeEnum

from .connect import DRIVER_ERRORS, cursor_to_dicts, driver_error_message, execute
from .placeholders import parse_parameters, translate_placeholders

_log = logging.getLogger(__name__)

_PARAMSTYLES: dict[ProductTypeEnum, str] = {
    ProductTypeEnum.MYSQL: "pyformat",
    ProductTypeEnum.POSTGRES: "pyformat",
    ProductTypeEnum.SQLITE: "named",
}


class PreparedStatement:
    def __init__(self, conn: Any, query: str, product_type: ProductTypeEnum) -> None:
        self.query = query
        self.product_type = product_type
        self.tokens: list[str] = parse_parameters(query)
        self._conn = conn
        self._sql = (
            translate_placeholders(query, _PARAMSTYLES[product_type])
            if self.tokens
            else query
        )
        self._values: dict[str, BindValue] = {}
        self._cursor: Any = None

    @property
    def driver_sql(self) -> str:
        """SQL text as sent to the driver."""
        return self._sql

    @property
    def bound(self) -> dict[str, BindValue]:
        return dict(self._values)

    def bind_value(self, name: str, value: Any, kind: BindKind) -> bool:
        """
        Attach *value* to token *name* (``":id"`` form). Returns False when the
        token does not exist in the statement or *value* does not fit *kind*.
        """
        bare = name[1:] if name.startswith(":") else name
        if bare not in self.tokens:
            return False
        bound = BindValue(kind, value)
        if not bound.matches_kind():
            return False
        self._values[bare] = bound
        return True

    def execute(self) -> None:
        """Run the statement. Raises ExecutionError with the driver's text on failure."""
        unbound = [t for t in self.tokens if t not in self._values]
        if unbound:
            raise ExecutionError(
                "Invalid parameter number: no value bound for "
                + ", ".join(f":{t}" for t in unbound)
            )
        params = {name: bv.value for name, bv in self._values.items()} or None
        self.close()
        try:
            self._cursor = execute(
                self._conn, self._sql, params, product_type=self.product_type
            )
        except DRIVER_ERRORS as e:
            raise ExecutionError(driver_error_message(e)) from e

    def _require_cursor(self) -> Any:
        if self._cursor is None:
            raise ExecutionError("statement has not been executed")
        return self._cursor

    def fetch_all(self) -> list[dict[str, Any]]:
        cur = self._require_cursor()
        try:
            return cursor_to_dicts(cur)
        except DRIVER_ERRORS as e:
            raise ExecutionError(driver_error_message(e)) from e

    @property
    def row_count(self) -> int:
        rc = self._require_cursor().rowcount
        return rc if rc is not None and rc >= 0 else 0

    @property
    def last_insert_id(self) -> Any:
        return getattr(self._require_cursor(), "lastrowid", None)

    def close(self) -> None:
        if self._cursor is None:
            return
        cur, self._cursor = self._cursor, None
        try:
            cur.close()
        except DRIVER_ERRORS as e:
            _log.debug("cursor close failed: %s", e)


def prepare(conn: Any, query: str, product_type: ProductTypeEnum) -> PreparedStatement:
    """Prepare *query* for execution on *conn*. Raises PrepareError."""
    if conn is None:
        raise PrepareError("no open connection to prepare the statement on")
    try:
        return PreparedStatement(conn, query, product_type)
    except (KeyError, ValueError) as e:
        raise PrepareError(f"could not prepare statement: {e}") from e
