"""Compile a subfilter registry into one boolean SQL expression.

Top-level subfilters (those not referenced by a compound group) come first, in
insertion order, followed by the compound groups in insertion order; all of
them are joined with ``AND``. Compound groups are parenthesized and their
children joined with ``AND`` / ``OR``.
"""

from __future__ import annotations
import logging
from typing import Any, Optional

from ...errors import SubfilterNotFound
from ...fragments import Fragment, Seq, finalize, join_fragments
from ...fragments.finalize import resolve_dialect
from ...schema import get_domain
from ..registry import CompoundOp, Registry
from ..spec import Aggregation, Strategy
from . import aggregation_builder, exists_builder, in_builder

logger = logging.getLogger(__name__)


def compile_subfilter(registry: Registry, subfilter_id: str, dialect=None) -> Fragment:
    """Boolean fragment for one subfilter, honoring strategy overrides.

    Aggregation filters always use the EXISTS shape.
    """
    dialect = resolve_dialect(dialect)
    try:
        spec = registry.subfilters[subfilter_id]
        resolution = registry.join_resolutions[subfilter_id]
    except KeyError as error:
        raise SubfilterNotFound(f"Subfilter `{subfilter_id}` not found", {"id": subfilter_id}) from error
    primary_key = get_domain(registry.domain_key).primary_key
    if isinstance(spec.filter_spec, Aggregation):
        return aggregation_builder.build(spec, resolution, registry.base_table, primary_key)
    if registry.effective_strategy(subfilter_id) is Strategy.IN:
        return in_builder.build(spec, resolution, registry.base_table, primary_key, dialect)
    return exists_builder.build(spec, resolution, dialect)


def _compile_compound(registry: Registry, op: CompoundOp, dialect) -> Optional[Fragment]:
    children = []
    for child in op.children:
        if isinstance(child, CompoundOp):
            compiled = _compile_compound(registry, child, dialect)
        elif child not in registry.subfilters:
            logger.warning("Skipping removed subfilter `%s` referenced by a %s group", child, op.type.value)
            compiled = None
        else:
            compiled = compile_subfilter(registry, child, dialect)
        if compiled is not None:
            children.append(compiled)
    if not children:
        return None
    return Seq(parts=("(", join_fragments(children, f" {op.type.value.upper()} "), ")"))


def generate_fragment(registry: Registry, dialect=None) -> Optional[Fragment]:
    """Fragment for the whole registry, or ``None`` when nothing is left to compile."""
    dialect = resolve_dialect(dialect)
    grouped = registry.referenced_ids()
    parts: list[Fragment] = [
        compile_subfilter(registry, subfilter_id, dialect)
        for subfilter_id in registry.subfilters
        if subfilter_id not in grouped
    ]
    for op in registry.compound_ops:
        compiled = _compile_compound(registry, op, dialect)
        if compiled is not None:
            parts.append(compiled)
    if not parts:
        return None
    return join_fragments(parts, " AND ")


def generate(registry: Registry, dialect=None) -> tuple[str, list[Any]]:
    """Return ``(sql, params)`` for the registry; ``("", [])`` when it is empty."""
    fragment = generate_fragment(registry, dialect)
    if fragment is None:
        return "", []
    sql, params = finalize(fragment, dialect)
    logger.debug("Subfilter SQL: %s", sql)
    return sql, params


def generate_for_subfilter(registry: Registry, subfilter_id: str, dialect=None) -> tuple[str, list[Any]]:
    return finalize(compile_subfilter(registry, subfilter_id, dialect), dialect)


__all__ = [
    "compile_subfilter",
    "generate",
    "generate_for_subfilter",
    "generate_fragment",
]
