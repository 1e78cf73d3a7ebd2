"""``base.pk IN (SELECT base.pk FROM base INNER JOIN ... WHERE <predicate>)``."""

from __future__ import annotations

from ...fragments import Fragment, Seq
from ..join_path_resolver import JoinResolution
from ..spec import Spec
from .predicate import build_predicate, join_clauses, qualified_field


def build(spec: Spec, resolution: JoinResolution, base_table: str, primary_key: str, dialect) -> Fragment:
    key = f"{base_table}.{primary_key}"
    return Seq(parts=(
        f"{key} {'NOT IN' if spec.negate else 'IN'} (SELECT {key} FROM {base_table}",
        join_clauses(resolution.joins),
        " WHERE ",
        build_predicate(spec.filter_spec, qualified_field(resolution), dialect),
        ")",
    ))
