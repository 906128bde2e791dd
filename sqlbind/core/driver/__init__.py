"""
Driver boundary for one external database connection.

pymysql, psycopg and sqlite3 are used directly; DataSource (product_type, host, ...) is enough.
"""

from .connect import (
    DRIVER_ERRORS,
    begin_transaction,
    commit_transaction,
    connect,
    cursor_to_dicts,
    driver_error_message,
    execute,
    in_transaction,
    resolve_product_type,
    rollback_transaction,
)
from .health import health_check
from .statement import PreparedStatement, prepare

__all__ = [
    "DRIVER_ERRORS",
    "connect",
    "execute",
    "cursor_to_dicts",
    "driver_error_message",
    "resolve_product_type",
    "begin_transaction",
    "commit_transaction",
    "rollback_transaction",
    "in_transaction",
    "health_check",
    "PreparedStatement",
    "prepare",
]
