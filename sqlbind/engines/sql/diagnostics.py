"""
Per-call diagnostics: fatal errors, non-fatal warnings and an optional trace.

Every pipeline call builds its own Diagnostics and returns it inside the
result, so nothing leaks between calls.
"""

import logging
from typing import NamedTuple

from sqlbind.core.errors import ErrorKind, SqlBindError


class DiagnosticEntry(NamedTuple):
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


class Diagnostics:
    """Accumulates what happened during one execute/run_batch/builder call."""

    def __init__(self, *, trace_enabled: bool = False) -> None:
        self.trace_enabled = trace_enabled
        self.errors: list[DiagnosticEntry] = []
        self.warnings: list[DiagnosticEntry] = []
        self.trace_log: list[str] = []

    def error(self, kind: ErrorKind, message: str) -> None:
        self.errors.append(DiagnosticEntry(kind, message))

    def warn(self, kind: ErrorKind, message: str) -> None:
        self.warnings.append(DiagnosticEntry(kind, message))

    def record(self, exc: SqlBindError) -> None:
        """File *exc* as an error or a warning according to its ``fatal`` flag."""
        if exc.fatal:
            self.error(exc.kind, str(exc))
        else:
            self.warn(exc.kind, str(exc))

    def trace(self, message: str, logger: logging.Logger | None = None) -> None:
        if logger is not None:
            logger.debug(message)
        if self.trace_enabled:
            self.trace_log.append(message)

    def extend(self, other: "Diagnostics") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.trace_log.extend(other.trace_log)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def messages(self) -> list[str]:
        """All error and warning texts, errors first."""
        return [e.message for e in self.errors] + [w.message for w in self.warnings]

    def kinds(self) -> set[ErrorKind]:
        return {e.kind for e in self.errors} | {w.kind for w in self.warnings}

    def __repr__(self) -> str:
        return (
            f"Diagnostics(errors={len(self.errors)}, warnings={len(self.warnings)}, "
            f"trace={len(self.trace_log)})"
        )
