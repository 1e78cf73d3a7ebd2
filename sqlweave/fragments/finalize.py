"""Linearize a fragment tree into SQL text plus the ordered list of bound values."""

from __future__ import annotations
import logging
from typing import Any, Optional

from ..errors import UsageError
from ._bases import Fragment
from .cte import Cte
from .param import Param
from .sequence import Seq
from .text import Text

logger = logging.getLogger(__name__)


def resolve_dialect(dialect):
    if dialect is not None:
        return dialect
    from ..dialects import PostgresDialect
    return PostgresDialect()


def finalize(fragment: Fragment, dialect=None, start: int = 1) -> tuple[str, list[Any]]:
    """Return ``(sql, params)`` for a tree that holds no ``Cte`` markers.

    Each ``Param`` met in a depth-first, left-to-right walk becomes the next
    placeholder, numbered from ``start``; its value is appended to ``params``.

    Raises:
        UsageError: If a ``Cte`` marker is still present (use ``finalize_with_ctes``).
    """
    dialect = resolve_dialect(dialect)
    chunks: list[str] = []
    params: list[Any] = []
    for leaf in fragment.iter_leaves():
        if isinstance(leaf, Text):
            chunks.append(leaf.text)
        elif isinstance(leaf, Param):
            chunks.append(dialect.placeholder(start + len(params)))
            params.append(leaf.value)
        elif isinstance(leaf, Cte):
            raise UsageError(
                f"CTE `{leaf.name}` found while finalizing; use finalize_with_ctes for trees with CTEs"
            )
        else:
            raise UsageError(f"Unexpected fragment leaf: {type(leaf).__name__}")
    return "".join(chunks), params


def _extract_ctes(fragment: Fragment) -> tuple[list[Cte], list[Any], Fragment]:
    """Split a tree into its CTE markers, its top-level params and what remains.

    CTEs are collected in first-encountered order at any depth. A ``Param`` is
    "stray" when it is the root itself or a direct child of the root ``Seq``.
    """
    ctes: list[Cte] = []
    stray: list[Any] = []

    def strip(node: Fragment, depth: int) -> Optional[Fragment]:
        if isinstance(node, Cte):
            ctes.append(node)
            return None
        if isinstance(node, Param):
            if depth <= 1:
                stray.append(node.value)
                return None
            return node
        if isinstance(node, Seq):
            kept = (strip(part, depth + 1) for part in node.parts)
            return Seq(parts=tuple(part for part in kept if part is not None))
        return node

    remaining = strip(fragment, 0)
    return ctes, stray, remaining if remaining is not None else Seq()


def finalize_with_ctes(
    fragment: Fragment, dialect=None
) -> tuple[list[tuple[str, str]], str, list[Any]]:
    """Return ``(ctes, main_sql, params)`` where ``ctes`` is a list of ``(name, sql)``.

    Every CTE body is finalized on its own, numbering from 1. The main query is
    numbered from ``1 + total CTE param count``. ``params`` holds the CTE params
    (in CTE order), then the main query params, then the stray top-level params.
    Stray params are dropped from the main text and only appended to ``params``.
    """
    dialect = resolve_dialect(dialect)
    ctes, stray, remaining = _extract_ctes(fragment)
    named_sql: list[tuple[str, str]] = []
    params: list[Any] = []
    for cte in ctes:
        sql, cte_params = finalize(cte.body, dialect)
        named_sql.append((cte.name, sql))
        params.extend(cte_params)
    main_sql, main_params = finalize(remaining, dialect, start=1 + len(params))
    params.extend(main_params)
    if stray:
        logger.debug("Appending %d top-level param(s) after the main query params", len(stray))
    params.extend(stray)
    return named_sql, main_sql, params


def assemble_with_ctes(ctes: list[tuple[str, str]], main_sql: str) -> str:
    """Prefix ``main_sql`` with ``WITH name1 AS (sql1), name2 AS (sql2)`` when there are CTEs."""
    if not ctes:
        return main_sql
    definitions = ", ".join(f"{name} AS ({sql})" for name, sql in ctes)
    return f"WITH {definitions} {main_sql}"
