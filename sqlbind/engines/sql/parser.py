"""
Token/parameter reconciliation and statement splitting for SQL text.

Tokens are ``:name`` placeholders; see sqlbind.core.driver.placeholders for
how they are scanned.
"""

import re
from enum import Enum
from typing import Any, Mapping, NamedTuple

from sqlbind.core.driver.placeholders import (
    is_identifier,
    iter_tokens,
    parse_parameters,
    strip_literals,
)

__all__ = [
    "TokenMatch",
    "TokenMatchStatus",
    "is_identifier",
    "iter_tokens",
    "normalize_param_name",
    "parse_parameters",
    "remove_extra_params",
    "split_statements",
    "strip_literals",
    "statement_keyword",
    "verify_tokens",
]


class TokenMatchStatus(str, Enum):
    MATCHED = "matched"
    EXTRA = "extra"
    MISSING = "missing"


class TokenMatch(NamedTuple):
    """Result of verify_tokens. ``names`` are bare (no colon)."""

    status: TokenMatchStatus
    names: tuple[str, ...] = ()


def normalize_param_name(name: str) -> str:
    """Bare parameter name: ``":id"`` and ``"id"`` both give ``"id"``."""
    return name[1:] if name.startswith(":") else name


def verify_tokens(query: str, params: Mapping[str, Any] | None) -> TokenMatch:
    """
    Reconcile the tokens of *query* with the keys of *params*.

    Keys may carry the leading colon or not. Missing tokens take precedence
    over extra parameters; extra parameters alone are recoverable.
    """
    tokens = parse_parameters(query)
    keys = list(params or {})

    missing = [t for t in tokens if t not in keys and f":{t}" not in keys]
    if missing:
        return TokenMatch(TokenMatchStatus.MISSING, tuple(missing))

    token_set = set(tokens)
    extra: dict[str, None] = {}
    for key in keys:
        bare = normalize_param_name(key)
        if bare not in token_set:
            extra.setdefault(bare, None)
    if extra:
        return TokenMatch(TokenMatchStatus.EXTRA, tuple(extra))
    return TokenMatch(TokenMatchStatus.MATCHED)


def remove_extra_params(
    params: Mapping[str, Any], extra: tuple[str, ...] | list[str]
) -> dict[str, Any]:
    """Copy of *params* without the *extra* names, in either key form."""
    drop = {normalize_param_name(n) for n in extra}
    return {k: v for k, v in params.items() if normalize_param_name(k) not in drop}


def statement_keyword(query: str) -> str:
    """Leading keyword, upper-cased: first whitespace-delimited token after any comments."""
    s = re.sub(r"^[\s;(]+", "", strip_literals(query))
    if not s:
        return ""
    first = s.split(None, 1)[0]
    return first.rstrip(";(").upper()


def split_statements(sql: str) -> list[str]:
    """Split SQL into statements on ``;`` while respecting quoted strings.

    Handles single-quoted (``'...'``), double-quoted (``"..."``), and
    dollar-quoted (``$$...$$``) literals so that semicolons inside them
    are not treated as statement terminators.
    """
    stmts: list[str] = []
    current: list[str] = []
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]

        if ch in ("'", '"', "`"):
            quote = ch
            current.append(ch)
            i += 1
            while i < length:
                c = sql[i]
                current.append(c)
                if c == quote:
                    if i + 1 < length and sql[i + 1] == quote:
                        current.append(sql[i + 1])
                        i += 2
                        continue
                    i += 1
                    break
                if c == "\\" and i + 1 < length:
                    current.append(sql[i + 1])
                    i += 2
                    continue
                i += 1
            continue

        if ch == "$" and i + 1 < length and sql[i + 1] == "$":
            tag_end = sql.find("$$", i + 2)
            if tag_end == -1:
                current.append(sql[i:])
                i = length
            else:
                current.append(sql[i : tag_end + 2])
                i = tag_end + 2
            continue

        if ch == "-" and i + 1 < length and sql[i + 1] == "-":
            end = sql.find("\n", i)
            if end == -1:
                current.append(sql[i:])
                i = length
            else:
                current.append(sql[i : end + 1])
                i = end + 1
            continue

        if ch == "/" and i + 1 < length and sql[i + 1] == "*":
            end = sql.find("*/", i + 2)
            if end == -1:
                current.append(sql[i:])
                i = length
            else:
                current.append(sql[i : end + 2])
                i = end + 2
            continue

        if ch == ";":
            stmt = "".join(current).strip()
            if stmt:
                stmts.append(stmt)
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    tail = "".join(current).strip()
    if tail:
        stmts.append(tail)
    return stmts
