"""Join dependency resolution: which joins a query needs, and in which order to apply them.

Fields declare the join they live on (``ColumnDef.requires_join``) and joins
declare their prerequisite (``JoinDef.requires_join``). Selections and filters
are scanned for referenced fields, the resulting join names are expanded with
their prerequisite chains, and each join is emitted as a ``LEFT JOIN``.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from .errors import JoinCycleError, UnknownReference
from .fragments import Fragment, Seq
from .schema import ColumnDef, Domain, JoinDef

logger = logging.getLogger(__name__)

ROOT_JOIN = "__root__"
"""Pseudo join name for fields of the base table; applying it emits nothing."""

FILTER_GROUPS = ("and", "or")

_AGGREGATE_SELECTIONS = ("array", "coalesce")


def _join_of(fields: Mapping[str, ColumnDef], field: str) -> str:
    try:
        column = fields[field]
    except KeyError as error:
        raise UnknownReference(f"Unknown field `{field}`", {"field": field}) from error
    return column.requires_join or ROOT_JOIN


def _fields_of_selection(selection: Any) -> list[str]:
    """Field names referenced by one selection item."""
    if isinstance(selection, str):
        return [selection]
    if not isinstance(selection, (tuple, list)) or not selection:
        raise UnknownReference(f"Unsupported selection: {selection!r}", {"selection": selection})
    head = selection[0]
    if head == "literal":
        return []
    if head in _AGGREGATE_SELECTIONS:
        # ("array", alias, [fields])
        return list(selection[2])
    if head == "case":
        # ("case", alias, {when: field})
        return list(selection[2].values())
    # function call: (fn, field) or (fn, [fields])
    arguments = selection[1] if len(selection) > 1 else []
    if isinstance(arguments, str):
        arguments = [arguments]
    return [argument for argument in arguments if isinstance(argument, str) and argument != "*"]


def required_joins_for_selection(fields: Mapping[str, ColumnDef], selections: Iterable[Any]) -> set[str]:
    """Return the join names required by ``selections``.

    Selection items are plain field names, ``("literal", value)``, function calls
    ``(fn, field)`` / ``(fn, [fields])``, ``("array" | "coalesce", alias, [fields])``
    or ``("case", alias, {when: field})``. Base table fields contribute ``ROOT_JOIN``.
    """
    return {
        _join_of(fields, field)
        for selection in selections
        for field in _fields_of_selection(selection)
    }


def is_filter_group(node: Any) -> bool:
    return (
        isinstance(node, tuple)
        and len(node) == 2
        and node[0] in FILTER_GROUPS
        and isinstance(node[1], (list, tuple))
    )


def is_filter_negation(node: Any) -> bool:
    return isinstance(node, tuple) and len(node) == 2 and node[0] == "not" and isinstance(node[1], tuple)


def fold_filters(node: Any, on_leaf: Callable[[str, Any], Any], on_group: Callable[[str, list], Any]):
    """Fold a filter tree bottom-up.

    Leaves are ``(field, condition)``; groups are ``("and" | "or", [filters])`` and
    ``("not", filter)``. ``on_leaf(field, condition)`` handles leaves and
    ``on_group(kind, folded_children)`` combines the folded children of a group.
    """
    if is_filter_group(node):
        return on_group(node[0], [fold_filters(child, on_leaf, on_group) for child in node[1]])
    if is_filter_negation(node):
        return on_group("not", [fold_filters(node[1], on_leaf, on_group)])
    if isinstance(node, tuple) and len(node) == 2 and isinstance(node[0], str):
        return on_leaf(node[0], node[1])
    raise UnknownReference(f"Unsupported filter: {node!r}", {"filter": node})


def required_joins_for_filters(domain: Domain, filters: Iterable[Any]) -> set[str]:
    """Return the join names required by the fields referenced in ``filters`` (descending into groups)."""
    result: set[str] = set()
    for node in filters:
        result |= fold_filters(
            node,
            on_leaf=lambda field, _condition: {_join_of(domain.columns, field)},
            on_group=lambda _kind, children: set().union(*children),
        )
    return result


def resolve_order(joins: Mapping[str, JoinDef], requested: Iterable[str]) -> list[str]:
    """Order ``requested`` joins so that every prerequisite precedes its dependents.

    Prerequisite chains are expanded, duplicates are dropped keeping the first
    occurrence and ``ROOT_JOIN`` is skipped.

    Raises:
        UnknownReference: If a requested join or a prerequisite is not declared.
        JoinCycleError: If a ``requires_join`` chain loops back on itself.
    """
    order: list[str] = []
    seen: set[str] = set()

    def chain(name: str, visiting: tuple[str, ...]) -> list[str]:
        if name in visiting:
            cycle = " -> ".join(visiting + (name,))
            raise JoinCycleError(f"Cyclic join prerequisites: {cycle}", {"cycle": list(visiting + (name,))})
        try:
            join = joins[name]
        except KeyError as error:
            raise UnknownReference(f"Unknown join `{name}`", {"join": name}) from error
        if join.requires_join is None:
            return [name]
        return chain(join.requires_join, visiting + (name,)) + [name]

    for name in requested:
        if name == ROOT_JOIN:
            continue
        for dependency in chain(name, ()):
            if dependency not in seen:
                seen.add(dependency)
                order.append(dependency)
    return order


def apply_join(
    domain: Domain,
    base_fragment: Fragment,
    join_name: str,
    parameters: Optional[list] = None,
) -> Fragment:
    """Append ``LEFT JOIN target AS join_name ON prerequisite.owner_key = join_name.joined_key``.

    ``ROOT_JOIN`` returns ``base_fragment`` unchanged. For joins with a condition
    template, ``parameters`` (parsed ``Parameter`` tokens) are validated against
    the join's definitions and the condition is appended with ``AND``.
    """
    if join_name == ROOT_JOIN:
        return base_fragment
    join = domain.get_join(join_name)
    prerequisite = join.requires_join or domain.base_table
    clause = Seq(parts=(
        f" LEFT JOIN {join.target_table} AS {join.name}"
        f" ON {prerequisite}.{join.owner_key} = {join.name}.{join.joined_key}",
    ))
    if join.condition is not None:
        from .field_reference import validate_parameters
        from .schema import parameterized_condition
        validated = validate_parameters(parameters or [], join.parameters)
        clause = Seq(parts=(clause, " AND ", parameterized_condition(join.condition, validated)))
    elif parameters:
        raise UnknownReference(
            f"Join `{join_name}` does not take parameters",
            {"join": join_name, "parameters": [parameter.value for parameter in parameters]},
        )
    logger.debug("Applying join %s (after %s)", join_name, prerequisite)
    return Seq(parts=(base_fragment, clause))
