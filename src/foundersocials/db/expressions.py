"""Dialect-aware SQL expressions used by ranking and search queries."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Float
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement


class epoch_seconds(FunctionElement):  # noqa: N801 - reads like a SQL function
    """Seconds since the Unix epoch for a timestamp column, as a float.

    Compiles to ``EXTRACT(EPOCH FROM x)`` on PostgreSQL and to ``julianday``
    arithmetic on SQLite so hot ranking can run inside ``ORDER BY``.
    """

    type = Float()
    inherit_cache = True
    name = "epoch_seconds"


@compiles(epoch_seconds)
def _compile_epoch_default(element: epoch_seconds, compiler: Any, **kw: Any) -> str:
    return "EXTRACT(EPOCH FROM %s)" % compiler.process(element.clauses, **kw)


@compiles(epoch_seconds, "sqlite")
def _compile_epoch_sqlite(element: epoch_seconds, compiler: Any, **kw: Any) -> str:
    # 2440587.5 is the Julian day number of 1970-01-01T00:00:00Z.
    return "((julianday(%s) - 2440587.5) * 86400.0)" % compiler.process(element.clauses, **kw)


LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """Build a substring ``LIKE`` pattern matching ``text`` literally.

    Use with ``escape=LIKE_ESCAPE`` so ``%`` and ``_`` in user input are not wildcards.
    """
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
