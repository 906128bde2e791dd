"""
ParameterBinder: attach parameter values to a prepared statement.

Each value is turned into a BindValue (null, boolean, integer, text) before it
reaches the driver; composite values are refused. Bind failures are
non-fatal: bind_all() records them as warnings and keeps going.
"""

import logging
from typing import Any, Mapping

from sqlbind.core.driver import PreparedStatement
from sqlbind.core.errors import BindError
from sqlbind.core.param_type import ParamTypeError, infer_bind_value

from .diagnostics import Diagnostics

_log = logging.getLogger(__name__)


class ParameterBinder:
    def bind(self, statement: PreparedStatement, name: str, value: Any) -> None:
        """Bind *value* to token *name* (with or without colon). Raises BindError."""
        if not name.startswith(":"):
            name = ":" + name
        try:
            bound = infer_bind_value(value)
        except ParamTypeError as e:
            raise BindError(f"Error: {name} parameter {e}") from e
        if not statement.bind_value(name, bound.value, bound.kind):
            raise BindError(
                f"Failed to bind '{bound.value}' to {name} ({bound.kind.value})"
            )

    def bind_all(
        self,
        statement: PreparedStatement,
        params: Mapping[str, Any] | None,
        diagnostics: Diagnostics,
    ) -> int:
        """Bind every parameter; returns how many were bound."""
        bound = 0
        for name, value in (params or {}).items():
            try:
                self.bind(statement, name, value)
            except BindError as e:
                _log.warning("%s", e)
                diagnostics.record(e)
                continue
            bound += 1
            diagnostics.trace(f"Parameter bound: {value!r} to :{name.lstrip(':')}", _log)
        return bound
