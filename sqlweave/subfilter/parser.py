"""Parse relationship paths and filter values into subfilter specs.

    >>> parse("film.rating", "R").filter_spec
    Equality(kind='equality', value='R')
    >>> parse("film.rating", ["R", "PG-13"], strategy="in").filter_spec.values
    ('R', 'PG-13')
    >>> parse("film.actor", ("count", ">", 5)).relationship_path.is_aggregation
    True
"""

from __future__ import annotations
import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..errors import InvalidOption, InvalidRelationshipPath, UnsupportedFilterSpec
from .spec import (
    AGGREGATION_FUNCTIONS,
    AGGREGATION_OPERATORS,
    COMPARISON_OPERATORS,
    Aggregation,
    Comparison,
    CompoundSpec,
    CompoundType,
    Equality,
    InList,
    Range,
    RelationshipPath,
    Spec,
    Strategy,
    Temporal,
    TemporalKind,
)

_SCALAR_TYPES = (str, bool, int, float, Decimal, datetime.date)


def _unsupported(value: Any) -> UnsupportedFilterSpec:
    return UnsupportedFilterSpec(
        "Unsupported filter specification",
        {"spec": value, "type": type(value).__name__},
    )


def parse_relationship_path(path: Any, is_aggregation: bool = False) -> RelationshipPath:
    """Split ``path`` into table segments and a target field.

    ``"film.category.name"`` gives segments ``("film", "category")`` and target
    field ``"name"``; a single segment (``"film"``) has no target field.
    """
    if not isinstance(path, str):
        raise InvalidRelationshipPath(
            "Relationship path must be a string",
            {"path": path, "type": type(path).__name__},
        )
    if not path.strip():
        raise InvalidRelationshipPath("Empty relationship path", {"path": path})
    segments = path.split(".")
    if any(not segment for segment in segments):
        raise InvalidRelationshipPath("Empty segment in relationship path", {"path": path})
    if len(segments) == 1:
        return RelationshipPath(
            path_segments=(segments[0],),
            target_table=segments[0],
            target_field=None,
            is_aggregation=is_aggregation,
        )
    tables = tuple(segments[:-1])
    return RelationshipPath(
        path_segments=tables,
        target_table=tables[-1],
        target_field=segments[-1],
        is_aggregation=is_aggregation,
    )


def is_aggregation_value(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 3
        and value[0] in AGGREGATION_FUNCTIONS
        and value[1] in AGGREGATION_OPERATORS
    )


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _parse_temporal(value: tuple):
    name = value[0]
    if name == "recent" and len(value) == 2 and isinstance(value[1], dict):
        years = value[1].get("years", 1)
        if _positive_int(years):
            return Temporal(temporal=TemporalKind.RECENT_YEARS, value=years)
    elif name in ("within_days", "within_hours") and len(value) == 2 and _positive_int(value[1]):
        return Temporal(temporal=TemporalKind(name), value=value[1])
    elif name == "since_date" and len(value) == 2 and isinstance(value[1], (datetime.date, str)):
        return Temporal(temporal=TemporalKind.SINCE_DATE, value=value[1])
    return None


def parse_filter_value(value: Any, strategy: Strategy = Strategy.EXISTS):
    """Classify ``value`` into one filter-spec variant (first matching shape wins)."""
    if isinstance(value, _SCALAR_TYPES):
        return Equality(value=value)
    if isinstance(value, list):
        if strategy is Strategy.IN and value:
            return InList(values=tuple(value))
        raise _unsupported(value)
    if not isinstance(value, tuple) or not value:
        raise _unsupported(value)
    if len(value) == 2 and value[0] in COMPARISON_OPERATORS:
        return Comparison(op=value[0], value=value[1])
    if len(value) == 3 and value[0] == "between":
        return Range(min=value[1], max=value[2])
    if is_aggregation_value(value):
        return Aggregation(fn=value[0], op=value[1], value=value[2])
    temporal = _parse_temporal(value)
    if temporal is not None:
        return temporal
    raise _unsupported(value)


def _validate_strategy(strategy: Any) -> Strategy:
    if strategy is None:
        return Strategy.EXISTS
    try:
        return Strategy(strategy)
    except ValueError as error:
        raise InvalidOption("Invalid strategy option", {"strategy": strategy}) from error


def parse(path: Any, value: Any, *, strategy: Any = None, negate: Any = False) -> Spec:
    """Parse one subfilter.

    Raises:
        InvalidRelationshipPath: If ``path`` is not a non-empty dotted string.
        UnsupportedFilterSpec: If ``value`` matches no supported shape.
        InvalidOption: If ``strategy`` or ``negate`` are invalid.
    """
    strategy = _validate_strategy(strategy)
    if not isinstance(negate, bool):
        raise InvalidOption("Invalid negate option - must be boolean", {"negate": negate})
    relationship_path = parse_relationship_path(path, is_aggregation=is_aggregation_value(value))
    return Spec(
        relationship_path=relationship_path,
        filter_spec=parse_filter_value(value, strategy),
        strategy=strategy,
        negate=negate,
    )


def as_compound_type(value: Any) -> CompoundType:
    try:
        return CompoundType(value)
    except ValueError as error:
        raise InvalidOption("Invalid compound type - must be 'and' or 'or'", {"type": value}) from error


def is_compound_item(item: Any) -> bool:
    """True for nested ``("and" | "or", [items])`` groups inside a compound list."""
    return (
        isinstance(item, tuple)
        and len(item) == 2
        and isinstance(item[1], list)
        and (isinstance(item[0], CompoundType) or item[0] in ("and", "or"))
        and all(isinstance(child, (tuple, CompoundSpec)) for child in item[1])
    )


ITEM_OPTIONS = ("strategy", "negate")


def check_item_options(options: dict[str, Any]) -> None:
    """Reject option keys other than ``strategy`` and ``negate``."""
    unknown = sorted(set(options) - set(ITEM_OPTIONS))
    if unknown:
        raise InvalidOption(f"Unknown subfilter option(s): {unknown}", {"options": unknown})


def split_compound_item(item: Any) -> tuple[str, Any, dict[str, Any]]:
    """Return ``(path, value, options)`` for a ``(path, value)`` or ``(path, value, options)`` item."""
    if isinstance(item, tuple) and len(item) in (2, 3) and isinstance(item[0], str):
        options = item[2] if len(item) == 3 else {}
        if isinstance(options, dict):
            return item[0], item[1], options
    raise UnsupportedFilterSpec("Invalid subfilter specification in list", {"item": item})


def parse_compound(type: Any, items: Iterable[Any], options: Optional[dict[str, Any]] = None) -> CompoundSpec:
    """Parse an AND/OR group; the first malformed item aborts with its error.

    ``options`` (``strategy``, ``negate``) apply to every item unless the item
    carries its own options dict.
    """
    compound_type = as_compound_type(type)
    children: list[Spec | CompoundSpec] = []
    for item in items:
        if isinstance(item, CompoundSpec):
            children.append(item)
        elif is_compound_item(item):
            children.append(parse_compound(item[0], item[1], options))
        else:
            path, value, item_options = split_compound_item(item)
            merged = dict(options or {}) | item_options
            merged.pop("id", None)
            check_item_options(merged)
            children.append(parse(path, value, **merged))
    return CompoundSpec(type=compound_type, children=tuple(children))
