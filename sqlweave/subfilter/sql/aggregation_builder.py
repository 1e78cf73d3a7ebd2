"""Aggregation subfilters, always compiled through the EXISTS shape.

    EXISTS (SELECT 1 FROM film_actor INNER JOIN actor ON ...
            WHERE film.film_id = film_actor.film_id HAVING COUNT(*) > $1)

Without a related table (``"film"`` with ``("count", ">", 5)``) the aggregate
runs over the outer row's own base table rows, aliased ``<base>_rows`` and
correlated on the primary key.
"""

from __future__ import annotations
from typing import Optional

from ...fragments import Fragment, Param, Seq
from ..join_path_resolver import JoinResolution
from ..spec import Spec
from .predicate import correlated_source, qualified_field


def aggregate_expression(spec: Spec, resolution: JoinResolution, table: Optional[str] = None) -> str:
    if resolution.target_field is None:
        argument = "*"
    elif table is None:
        argument = qualified_field(resolution)
    else:
        argument = f"{table}.{resolution.target_field}"
    return f"{spec.filter_spec.fn.upper()}({argument})"


def build(spec: Spec, resolution: JoinResolution, base_table: str, primary_key: str) -> Fragment:
    source, conditions = correlated_source(resolution)
    table = None
    if not source:
        table = f"{base_table}_rows"
        source = f" FROM {base_table} AS {table}"
        conditions = [f"{table}.{primary_key} = {base_table}.{primary_key}"]
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return Seq(parts=(
        "NOT EXISTS (SELECT 1" if spec.negate else "EXISTS (SELECT 1",
        source,
        where,
        f" HAVING {aggregate_expression(spec, resolution, table)} {spec.filter_spec.op} ",
        Param(value=spec.filter_spec.value),
        ")",
    ))
