"""
Schema-checked INSERT / UPDATE / DELETE builders.

Table and column names are validated against the SchemaCache before any SQL
is built; every value (including WHERE keys) is bound as a parameter. A
validation failure returns a failed result without issuing a statement.
"""

import logging
from typing import Any, Mapping

from sqlbind.core.errors import ErrorKind, SchemaValidationError
from sqlbind.models import ProductTypeEnum

from .executor import ExecutionResult, QueryExecutor
from .identifiers import quote_identifier
from .parser import is_identifier, normalize_param_name
from .schema import SchemaCache

_log = logging.getLogger(__name__)


class QueryBuilder:
    def __init__(self, executor: QueryExecutor, schema: SchemaCache | None = None) -> None:
        self.executor = executor
        self.schema = schema or SchemaCache(executor)

    @property
    def product_type(self) -> ProductTypeEnum:
        return self.executor.product_type

    def _q(self, name: str) -> str:
        return quote_identifier(name, self.product_type)

    def _fail(self, message: str) -> ExecutionResult:
        diag = self.executor.new_diagnostics()
        diag.error(ErrorKind.SCHEMA_VALIDATION, message)
        _log.warning("%s", message)
        return ExecutionResult(None, diag)

    def _columns(
        self, table: str, params: Mapping[str, Any], taken: set[str] | None = None
    ) -> list[tuple[str, str, Any]]:
        """
        (column, token, value) for every entry of *params*. Raises
        SchemaValidationError on the first invalid column.
        """
        taken = taken if taken is not None else set()
        out: list[tuple[str, str, Any]] = []
        for key, value in params.items():
            column = normalize_param_name(key)
            if not self.schema.valid_column(table, column):
                raise SchemaValidationError(f"Invalid column: {table}.{column}")
            base = column if is_identifier(column) else f"p{len(taken) + 1}"
            token, n = base, 1
            while token in taken:
                n += 1
                token = f"{base}_{n}"
            taken.add(token)
            out.append((column, token, value))
        return out

    def _check_table(self, table: str) -> None:
        if not self.schema.valid_table(table):
            raise SchemaValidationError(f"Invalid table: {table}")

    # ------------------------------------------------------------------

    def build_insert(
        self, table: str, params: Mapping[str, Any], upsert: bool = True
    ) -> tuple[str, dict[str, Any]]:
        """INSERT statement and its bind params. Raises SchemaValidationError."""
        self._check_table(table)
        if not params:
            raise SchemaValidationError("Error: missing query parameters.")
        cols = self._columns(table, params)

        query = (
            f"INSERT INTO {self._q(table)} ({', '.join(self._q(c) for c, _, _ in cols)}) "
            f"VALUES ({', '.join(':' + t for _, t, _ in cols)})"
        )
        if upsert:
            query += self._upsert_clause(table, cols)
        return query, {t: v for _, t, v in cols}

    def _upsert_clause(self, table: str, cols: list[tuple[str, str, Any]]) -> str:
        keys = self.schema.primary_key(table)
        updates = [(c, t) for c, t, _ in cols if c not in keys]
        if not updates:
            return ""
        if self.product_type == ProductTypeEnum.MYSQL:
            return " ON DUPLICATE KEY UPDATE " + ", ".join(
                f"{self._q(c)} = :{t}" for c, t in updates
            )
        if not keys:
            return ""
        return (
            f" ON CONFLICT ({', '.join(self._q(k) for k in keys)}) DO UPDATE SET "
            + ", ".join(f"{self._q(c)} = excluded.{self._q(c)}" for c, _ in updates)
        )

    def build_update(
        self, table: str, params: Mapping[str, Any], key_params: Mapping[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        self._check_table(table)
        if not params:
            raise SchemaValidationError("Error: missing query parameters.")
        if not key_params:
            raise SchemaValidationError("Can't update row without valid key parameters")
        taken: set[str] = set()
        sets = self._columns(table, params, taken)
        # Key tokens share `taken` so they never collide with SET tokens
        keys = self._columns(table, key_params, taken)
        query = (
            f"UPDATE {self._q(table)} SET "
            + ", ".join(f"{self._q(c)} = :{t}" for c, t, _ in sets)
            + " WHERE "
            + " AND ".join(f"{self._q(c)} = :{t}" for c, t, _ in keys)
        )
        bind = {t: v for _, t, v in sets}
        bind.update({t: v for _, t, v in keys})
        return query, bind

    def build_delete(self, table: str, params: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
        self._check_table(table)
        if not params:
            raise SchemaValidationError("Can't delete row without valid parameters")
        cols = self._columns(table, params)
        where = " AND ".join(f"{self._q(c)} = :{t}" for c, t, _ in cols)
        return f"DELETE FROM {self._q(table)} WHERE {where}", {t: v for _, t, v in cols}

    # ------------------------------------------------------------------

    def insert_row(
        self, table: str, params: Mapping[str, Any], upsert: bool = True
    ) -> ExecutionResult:
        """Insert a row; with *upsert*, update non-key columns on a duplicate key."""
        try:
            query, bind = self.build_insert(table, params, upsert)
        except SchemaValidationError as e:
            return self._fail(str(e))
        return self.executor.execute(query, bind)

    def update_row(
        self, table: str, params: Mapping[str, Any], key_params: Mapping[str, Any]
    ) -> ExecutionResult:
        """Update the row(s) matching every ``key_params`` column with ``params``."""
        try:
            query, bind = self.build_update(table, params, key_params)
        except SchemaValidationError as e:
            return self._fail(str(e))
        return self.executor.execute(query, bind)

    def delete_row(self, table: str, params: Mapping[str, Any]) -> ExecutionResult:
        """Delete the row(s) matching every column in *params*; refuses an empty filter."""
        try:
            query, bind = self.build_delete(table, params)
        except SchemaValidationError as e:
            return self._fail(str(e))
        return self.executor.execute(query, bind)
