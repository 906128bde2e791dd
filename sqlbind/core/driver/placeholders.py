"""
Scan ``:name`` placeholders in SQL text and rewrite them for a driver paramstyle.

Scanning skips quoted strings, quoted identifiers, comments and PostgreSQL
``::`` casts, so ``'10:30'`` or ``x::int`` never count as tokens.
"""

import re
from typing import Iterator

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")

# Quoted strings, quoted identifiers, comments and dollar-quoted bodies
_SKIPPED = r"""
      '(?:[^'\\]|\\.)*'
    | "(?:[^"\\]|\\.)*"
    | `[^`]*`
    | --[^\n]*
    | /\*.*?\*/
    | \$\$.*?\$\$
"""

_SKIP_SCAN = re.compile(_SKIPPED, re.VERBOSE | re.DOTALL)

_TOKEN_SCAN = re.compile(
    _SKIPPED
    + r"""
    | ::+
    | :(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE | re.DOTALL,
)


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER.match(name))


def strip_literals(query: str) -> str:
    """*query* with string literals, quoted identifiers and comments blanked to spaces."""
    return _SKIP_SCAN.sub(" ", query)


def iter_tokens(query: str) -> Iterator[re.Match]:
    """Yield one match per ``:name`` token (``match.group("name")``), in order."""
    for m in _TOKEN_SCAN.finditer(query):
        if m.group("name") is not None:
            yield m


def parse_parameters(query: str) -> list[str]:
    """
    Token names used in *query*, in order of first occurrence, deduplicated.
    """
    seen: dict[str, None] = {}
    for m in iter_tokens(query):
        seen.setdefault(m.group("name"), None)
    return list(seen)


def translate_placeholders(query: str, style: str) -> str:
    """
    Rewrite ``:name`` tokens into a driver paramstyle.

    - ``"named"``: unchanged (sqlite3).
    - ``"pyformat"``: ``%(name)s``, with literal ``%`` doubled (pymysql, psycopg).
    """
    if style == "named":
        return query
    if style != "pyformat":
        raise ValueError(f"Unsupported paramstyle: {style}")

    out: list[str] = []
    pos = 0
    for m in iter_tokens(query):
        out.append(query[pos : m.start()].replace("%", "%%"))
        out.append(f"%({m.group('name')})s")
        pos = m.end()
    out.append(query[pos:].replace("%", "%%"))
    return "".join(out)
