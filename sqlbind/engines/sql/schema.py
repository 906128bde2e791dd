"""
SchemaCache: table -> column -> data type, read from the database catalog.

The snapshot is loaded on first use and never invalidated proactively. A
table or column lookup that misses triggers exactly one reload before the name
is declared invalid, so a CREATE TABLE issued through the same session is
picked up. DDL issued through another connection is only seen after such a
miss (or an explicit refresh()).
"""

import logging
from typing import Any

from sqlbind.core.errors import ExecutionError, SchemaValidationError
from sqlbind.models import ProductTypeEnum

from .executor import QueryExecutor
from .identifiers import quote_identifier

_log = logging.getLogger(__name__)

_CATALOG_QUERIES: dict[ProductTypeEnum, str] = {
    ProductTypeEnum.MYSQL: (
        "SELECT TABLE_NAME AS table_name, COLUMN_NAME AS column_name, "
        "DATA_TYPE AS data_type "
        "FROM INFORMATION_SCHEMA.COLUMNS "
        "WHERE TABLE_SCHEMA = :database_name "
        "ORDER BY TABLE_NAME, ORDINAL_POSITION"
    ),
    ProductTypeEnum.POSTGRES: (
        "SELECT table_name, column_name, data_type "
        "FROM information_schema.columns "
        "WHERE table_catalog = :database_name AND table_schema = current_schema() "
        "ORDER BY table_name, ordinal_position"
    ),
    ProductTypeEnum.SQLITE: (
        "SELECT m.name AS table_name, p.name AS column_name, p.type AS data_type "
        "FROM sqlite_master AS m JOIN pragma_table_info(m.name) AS p "
        "WHERE m.type = 'table' AND m.name NOT LIKE 'sqlite_%' "
        "ORDER BY m.name, p.cid"
    ),
}

_PRIMARY_KEY_QUERIES: dict[ProductTypeEnum, str] = {
    ProductTypeEnum.POSTGRES: (
        "SELECT kcu.column_name AS column_name "
        "FROM information_schema.table_constraints AS tc "
        "JOIN information_schema.key_column_usage AS kcu "
        "ON tc.constraint_name = kcu.constraint_name "
        "AND tc.table_schema = kcu.table_schema "
        "WHERE tc.constraint_type = 'PRIMARY KEY' "
        "AND tc.table_name = :table_name AND tc.table_schema = current_schema() "
        "ORDER BY kcu.ordinal_position"
    ),
    ProductTypeEnum.SQLITE: (
        "SELECT name AS column_name FROM pragma_table_info(:table_name) "
        "WHERE pk > 0 ORDER BY pk"
    ),
}


class SchemaCache:
    def __init__(self, executor: QueryExecutor) -> None:
        self.executor = executor
        self._tables: dict[str, dict[str, str]] | None = None

    @property
    def product_type(self) -> ProductTypeEnum:
        return self.executor.product_type

    @property
    def loaded(self) -> bool:
        return self._tables is not None

    def load(self) -> dict[str, dict[str, str]]:
        """(Re)read the catalog. Raises SchemaValidationError when the query fails."""
        sql = _CATALOG_QUERIES[self.product_type]
        params: dict[str, Any] | None = None
        if self.product_type != ProductTypeEnum.SQLITE:
            params = {"database_name": self.executor.session.database_name}
        try:
            rows = self.executor.fetch_rows(sql, params)
        except ExecutionError as e:
            raise SchemaValidationError(f"Could not load table schema: {e}") from e

        tables: dict[str, dict[str, str]] = {}
        for row in rows:
            tables.setdefault(row["table_name"], {})[row["column_name"]] = row["data_type"]
        self._tables = tables
        _log.debug("schema loaded: %d tables", len(tables))
        return tables

    refresh = load

    def invalidate(self) -> None:
        self._tables = None

    def snapshot(self) -> dict[str, dict[str, str]]:
        """Copy of the cached mapping, loading it first if needed."""
        tables = self._tables if self._tables is not None else self.load()
        return {t: dict(cols) for t, cols in tables.items()}

    def _lookup(self, table: str, column: str | None = None) -> bool:
        if self._tables is None:
            self.load()
            return self._has(table, column)
        if self._has(table, column):
            return True
        # Reload once in case the table was created after the last load
        self.load()
        return self._has(table, column)

    def _has(self, table: str, column: str | None) -> bool:
        columns = (self._tables or {}).get(table)
        if columns is None:
            return False
        return column is None or column in columns

    def valid_table(self, table: str) -> bool:
        return isinstance(table, str) and self._lookup(table)

    def valid_column(self, table: str, column: str) -> bool:
        return isinstance(table, str) and isinstance(column, str) and self._lookup(table, column)

    def column_type(self, table: str, column: str) -> str | None:
        if not self.valid_column(table, column):
            return None
        return self._tables[table][column]

    def columns(self, table: str) -> list[str]:
        if not self.valid_table(table):
            return []
        return list(self._tables[table])

    def primary_key(self, table: str) -> list[str]:
        """
        Primary key columns of *table* in key order; empty when it has none.

        Raises SchemaValidationError for an unknown table.
        """
        if not self.valid_table(table):
            raise SchemaValidationError(f"Invalid table: {table}")
        if self.product_type == ProductTypeEnum.MYSQL:
            rows = self._fetch(
                f"SHOW KEYS FROM {quote_identifier(table, self.product_type)} "
                "WHERE Key_name = 'PRIMARY'"
            )
            rows.sort(key=lambda r: r.get("Seq_in_index", 0))
            return [r["Column_name"] for r in rows]
        rows = self._fetch(_PRIMARY_KEY_QUERIES[self.product_type], {"table_name": table})
        return [r["column_name"] for r in rows]

    def _fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        try:
            return self.executor.fetch_rows(sql, params)
        except ExecutionError as e:
            raise SchemaValidationError(f"Could not read table keys: {e}") from e
