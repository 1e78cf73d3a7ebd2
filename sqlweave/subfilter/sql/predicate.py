"""Leaf predicates (``field = $1``, ``field IN ($1, $2)``, ...) and join-chain helpers."""

from __future__ import annotations

from ...errors import UsageError
from ...fragments import Fragment, Param, Seq, join_fragments
from ...schema import JoinKind
from ..join_path_resolver import JoinResolution
from ..spec import Comparison, Equality, InList, Range, Temporal, TemporalKind


def qualified_field(resolution: JoinResolution) -> str:
    return f"{resolution.target_table}.{resolution.target_field}"


def build_predicate(filter_spec, column: str, dialect) -> Fragment:
    if isinstance(filter_spec, Equality):
        return Seq(parts=(f"{column} = ", Param(value=filter_spec.value)))
    if isinstance(filter_spec, Comparison):
        return Seq(parts=(f"{column} {filter_spec.op} ", Param(value=filter_spec.value)))
    if isinstance(filter_spec, Range):
        return Seq(parts=(
            f"{column} BETWEEN ", Param(value=filter_spec.min), " AND ", Param(value=filter_spec.max),
        ))
    if isinstance(filter_spec, InList):
        return Seq(parts=(
            f"{column} IN (",
            join_fragments(Param(value=value) for value in filter_spec.values),
            ")",
        ))
    if isinstance(filter_spec, Temporal):
        if filter_spec.temporal is TemporalKind.SINCE_DATE:
            return Seq(parts=(f"{column} > ", Param(value=filter_spec.value)))
        return dialect.temporal_bound(filter_spec.temporal.value, column, Param(value=filter_spec.value))
    raise UsageError(f"No direct predicate for {type(filter_spec).__name__} filters")


def _join_keyword(kind: JoinKind) -> str:
    return "LEFT JOIN" if kind is JoinKind.LEFT else "INNER JOIN"


def join_clauses(steps) -> str:
    """`` INNER JOIN t ON ...`` for each step (self steps emit nothing)."""
    clauses = []
    for step in steps:
        if step.is_self:
            continue
        clause = f" {_join_keyword(step.kind)} {step.to_table}"
        if step.on:
            clause += f" ON {step.on}"
        clauses.append(clause)
    return "".join(clauses)


def correlated_source(resolution: JoinResolution) -> tuple[str, list[str]]:
    """Return the ``FROM ...`` text and correlation conditions for a subquery over ``resolution``.

    The first real step's target becomes the FROM table and its ON condition
    (which references the outer base table) correlates the subquery; later
    steps are joined with their own ON conditions. Self-only resolutions give
    an empty FROM.
    """
    steps = [step for step in resolution.joins if not step.is_self]
    if not steps:
        return "", []
    first, rest = steps[0], steps[1:]
    conditions = [first.on] if first.on else []
    return f" FROM {first.to_table}{join_clauses(rest)}", conditions
