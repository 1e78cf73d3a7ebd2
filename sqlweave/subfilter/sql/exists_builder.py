"""``EXISTS (SELECT 1 FROM ... WHERE <correlation> AND <predicate>)``."""

from __future__ import annotations

from ...fragments import Fragment, Seq, join_fragments
from ..join_path_resolver import JoinResolution
from ..spec import Spec
from .predicate import build_predicate, correlated_source, qualified_field


def build(spec: Spec, resolution: JoinResolution, dialect) -> Fragment:
    source, conditions = correlated_source(resolution)
    predicate = build_predicate(spec.filter_spec, qualified_field(resolution), dialect)
    return Seq(parts=(
        "NOT EXISTS (SELECT 1" if spec.negate else "EXISTS (SELECT 1",
        source,
        " WHERE ",
        join_fragments(conditions + [predicate], " AND "),
        ")",
    ))
