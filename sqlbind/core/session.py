"""
DatabaseSession: explicit, scoped ownership of one connection handle.

The connection is opened when the session is entered and closed on every exit
path. Inside the session, ensure_connection() reopens a connection that was
closed by ``close_after`` and pings one that has been idle for a while.
Not thread-safe: one session serves one caller at a time.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from sqlbind.core.config import settings
from sqlbind.core.errors import DatabaseConnectionError
from sqlbind.models import DataSource, ProductTypeEnum

from .driver import DRIVER_ERRORS, connect, health_check, resolve_product_type

_log = logging.getLogger(__name__)


class DatabaseSession:
    def __init__(
        self,
        datasource: DataSource | dict[str, Any],
        *,
        connector: Callable[[Any], Any] = connect,
        ping_idle_seconds: float | None = None,
    ) -> None:
        self.datasource = datasource
        self.product_type: ProductTypeEnum = resolve_product_type(datasource)
        self._connector = connector
        self._ping_idle = (
            settings.CONNECTION_PING_IDLE_SECONDS
            if ping_idle_seconds is None
            else ping_idle_seconds
        )
        self._conn: Any = None
        self._last_used = 0.0
        self._open = False

    def __enter__(self) -> "DatabaseSession":
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> Any:
        """The current connection, or None."""
        return self._conn

    @property
    def database_name(self) -> str | None:
        if isinstance(self.datasource, dict):
            return self.datasource.get("database")
        return getattr(self.datasource, "database", None)

    def open(self) -> None:
        """Start the session and acquire the connection."""
        self._open = True
        try:
            self._connect()
        except Exception:
            self._open = False
            raise

    def _connect(self) -> None:
        try:
            self._conn = self._connector(self.datasource)
        except DatabaseConnectionError:
            raise
        except DRIVER_ERRORS as e:
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        self._last_used = time.monotonic()
        _log.debug("connection established (%s)", self.product_type.value)

    def check_connection(self) -> bool:
        """Ping the current connection; drop it when dead."""
        if self._conn is None:
            return False
        if health_check(self._conn, self.product_type):
            self._last_used = time.monotonic()
            return True
        _log.warning("connection lost, closing it")
        self.disconnect()
        return False

    def ensure_connection(self) -> Any:
        """
        Return a live connection, reconnecting when it was closed or found dead.

        Raises DatabaseConnectionError outside an open session or when the
        driver cannot connect.
        """
        if not self._open:
            raise DatabaseConnectionError("session is not open")
        if self._conn is not None:
            idle = time.monotonic() - self._last_used
            if idle <= self._ping_idle or self.check_connection():
                self._last_used = time.monotonic()
                return self._conn
        self._connect()
        return self._conn

    def disconnect(self) -> None:
        """Close the connection but keep the session open."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            conn.close()
        except DRIVER_ERRORS as e:
            _log.debug("connection close failed: %s", e)

    def close(self) -> None:
        """Close the connection and end the session."""
        self.disconnect()
        self._open = False
