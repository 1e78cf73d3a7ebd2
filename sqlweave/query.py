"""Fluent SELECT builder over a registered domain.

The builder collects selections, filters, subfilters, CTEs, ordering and a
limit, works out which joins the referenced fields need, and compiles the
whole thing to ``(sql, params)``. It never talks to a database.

    query = (
        Query(domain_key="film")
        .select("title", "category.name")
        .where(("rating", ["PG", "PG-13"]), ("release_year", (">", 2000)))
        .subfilter("film.actor.first_name", "PENELOPE")
        .order_by("title")
        .limit(10)
    )
    sql, params = query.to_sql()
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from .errors import ResolutionError, UnsupportedFilterSpec
from .field_reference import FieldReferenceKind, parse_field_reference
from .fragments import (
    Cte,
    Fragment,
    Param,
    Seq,
    assemble_with_ctes,
    finalize,
    join_fragments,
)
from .joins import (
    apply_join,
    fold_filters,
    required_joins_for_filters,
    required_joins_for_selection,
    resolve_order,
)
from .schema import Domain, Parameter, get_domain
from .subfilter import Registry, generate_fragment
from .subfilter.spec import COMPARISON_OPERATORS
from .values_clause import ValuesClause, build_values_cte

logger = logging.getLogger(__name__)

# Condition operators for where() leaves besides the comparison set.
_PATTERN_OPERATORS = ("like", "ilike", "not like", "not ilike")

_AGGREGATE_SELECTIONS = ("array", "coalesce", "case")


def _field_key(reference: str) -> tuple[str, Optional[str], tuple[Parameter, ...]]:
    """Map a field reference to ``(column key, join, join parameters)``."""
    parsed = parse_field_reference(reference)
    if parsed.kind is FieldReferenceKind.SIMPLE:
        return parsed.field, None, ()
    return f"{parsed.join}.{parsed.field}", parsed.join, parsed.parameters


def _order_item(item: Any) -> tuple[str, bool]:
    """``"title"`` or ``("title", "desc")`` -> ``(field, descending)``."""
    if isinstance(item, str):
        return item, False
    if isinstance(item, tuple) and len(item) == 2 and str(item[1]).lower() in ("asc", "desc"):
        return item[0], str(item[1]).lower() == "desc"
    raise TypeError(f"order_by requires a field name or (field, 'asc' | 'desc'); got {item!r}")


class Query(BaseModel):
    """Fluent query builder for one domain: SELECT, joins, WHERE, subfilters, CTEs, ORDER BY, LIMIT.

    Every method returns a new Query; the receiver is left untouched.
    """

    model_config = {"arbitrary_types_allowed": True}

    domain_key: str
    """Key the domain was registered under."""
    select_items: list[Any] = Field(default_factory=list, exclude=True)
    """Selections with field references normalized to column keys."""
    join_parameters: dict[str, tuple[Parameter, ...]] = Field(default_factory=dict, exclude=True)
    """Join name -> parameters taken from parameterized field references."""
    where_filters: list[Any] = Field(default_factory=list, exclude=True)
    """Filter trees, ANDed together."""
    registry: Optional[Registry] = Field(default=None, exclude=True)
    """Subfilters, created on first use."""
    ctes: list[Cte] = Field(default_factory=list, exclude=True)
    order_by_items: list[tuple[str, bool]] = Field(default_factory=list, exclude=True)
    limit_value: Optional[int] = None
    """Optional LIMIT (stored to avoid shadowing the limit() method)."""

    @property
    def domain(self) -> Domain:
        return get_domain(self.domain_key)

    def clone_query_with(self, **changes) -> Query:
        """Return a new Query with the same state except for the given overrides."""
        d = {name: getattr(self, name) for name in type(self).model_fields}
        d["select_items"] = list(self.select_items)
        d["join_parameters"] = dict(self.join_parameters)
        d["where_filters"] = list(self.where_filters)
        d["ctes"] = list(self.ctes)
        d["order_by_items"] = list(self.order_by_items)
        for k, v in changes.items():
            if k in d:
                d[k] = v
        return type(self)(**d)

    # --- building ---

    def _normalize_field(self, reference: str, join_parameters: dict) -> str:
        key, join, parameters = _field_key(reference)
        if parameters:
            previous = join_parameters.get(join)
            if previous is not None and previous != parameters:
                raise ResolutionError(
                    f"Join `{join}` is used with different parameters",
                    {"join": join},
                )
            join_parameters[join] = parameters
        self.domain.get_column(key)
        return key

    def _normalize_argument(self, reference: str, join_parameters: dict) -> str:
        if reference == "*":
            return reference
        return self._normalize_field(reference, join_parameters)

    def _normalize_selection(self, item: Any, join_parameters: dict) -> Any:
        if isinstance(item, str):
            return self._normalize_field(item, join_parameters)
        if not isinstance(item, tuple) or not item:
            raise TypeError(f"select requires a field reference or a selection tuple; got {item!r}")
        head = item[0]
        if head == "literal":
            return item
        if head in ("array", "coalesce"):
            return (head, item[1], [self._normalize_field(field, join_parameters) for field in item[2]])
        if head == "case":
            return (head, item[1], {
                condition: self._normalize_field(field, join_parameters)
                for condition, field in item[2].items()
            })
        arguments = item[1] if len(item) > 1 else []
        if isinstance(arguments, str):
            return (head, self._normalize_argument(arguments, join_parameters))
        return (head, [self._normalize_argument(field, join_parameters) for field in arguments])

    def select(self, *items: Any) -> Query:
        """Add selections: field references (``"title"``, ``"category.name"``,
        ``"posts:published.title"``), ``("literal", value)``, ``(fn, field)``,
        ``("array" | "coalesce", alias, [fields])`` or ``("case", alias, {condition_sql: field})``.
        """
        join_parameters = dict(self.join_parameters)
        normalized = [self._normalize_selection(item, join_parameters) for item in items]
        return self.clone_query_with(
            select_items=self.select_items + normalized,
            join_parameters=join_parameters,
        )

    def where(self, *filters: Any) -> Query:
        """Add filters: ``(field, condition)`` leaves, ``("and" | "or", [filters])`` and ``("not", filter)``.

        Conditions: a scalar (``=``), ``None`` (``IS NULL``), ``"not_null"``, a list
        (``IN``), ``(op, value)``, ``("between", low, high)``.
        """
        required_joins_for_filters(self.domain, filters)
        return self.clone_query_with(where_filters=self.where_filters + list(filters))

    def subfilter(self, path: str, value: Any, **options: Any) -> Query:
        """Add a subfilter (see :meth:`Registry.add_subfilter`)."""
        registry = self.registry or Registry.new(self.domain_key)
        return self.clone_query_with(registry=registry.add_subfilter(path, value, **options))

    def subfilter_compound(self, type: Any, items: list) -> Query:
        registry = self.registry or Registry.new(self.domain_key)
        return self.clone_query_with(registry=registry.add_compound(type, items))

    def with_cte(self, name: str, body: Fragment | str) -> Query:
        if isinstance(body, str):
            body = Seq(parts=(body,))
        return self.clone_query_with(ctes=self.ctes + [Cte(name=name, body=body)])

    def with_values(self, clause: ValuesClause) -> Query:
        return self.clone_query_with(ctes=self.ctes + [build_values_cte(clause)])

    def order_by(self, *items: Any) -> Query:
        """Add ORDER BY items: ``"title"`` or ``("title", "desc")``."""
        order_by_items = list(self.order_by_items)
        join_parameters = dict(self.join_parameters)
        for item in items:
            field, descending = _order_item(item)
            order_by_items.append((self._normalize_field(field, join_parameters), descending))
        return self.clone_query_with(order_by_items=order_by_items, join_parameters=join_parameters)

    def limit(self, limit: int) -> Query:
        """Set LIMIT to the given integer."""
        return self.clone_query_with(limit_value=int(limit))

    # --- SQL-generating methods ---

    def column_sql(self, key: str) -> str:
        """``alias.column`` for a column key (alias is the join name, or the base table)."""
        domain = self.domain
        column = domain.get_column(key)
        return f"{column.requires_join or domain.base_table}.{column.name}"

    def _argument_sql(self, field: str) -> str:
        return field if field == "*" else self.column_sql(field)

    def _selection_column(self, item: Any) -> str:
        if isinstance(item, str):
            return item
        head = item[0]
        if head == "literal":
            return item[2] if len(item) > 2 else "literal"
        if head in _AGGREGATE_SELECTIONS:
            return item[1]
        arguments = item[1] if len(item) > 1 else []
        if isinstance(arguments, str):
            return f"{head}({arguments})"
        return f"{head}({', '.join(arguments)})"

    def _selection_fragment(self, item: Any) -> Fragment:
        if isinstance(item, str):
            return Seq(parts=(self.column_sql(item),))
        head = item[0]
        if head == "literal":
            return Seq(parts=(Param(value=item[1]),))
        if head == "array":
            return Seq(parts=("ARRAY[" + ", ".join(self.column_sql(field) for field in item[2]) + "]",))
        if head == "coalesce":
            return Seq(parts=("COALESCE(" + ", ".join(self.column_sql(field) for field in item[2]) + ")",))
        if head == "case":
            branches = " ".join(
                f"WHEN {condition} THEN {self.column_sql(field)}" for condition, field in item[2].items()
            )
            return Seq(parts=(f"CASE {branches} END",))
        arguments = item[1] if len(item) > 1 else []
        if isinstance(arguments, str):
            arguments = [arguments]
        return Seq(parts=(f"{head.upper()}(" + ", ".join(self._argument_sql(field) for field in arguments) + ")",))

    @property
    def columns(self) -> list[str]:
        """Result column names, in SELECT order."""
        return [self._selection_column(item) for item in self.select_items]

    @property
    def aliases(self) -> dict[str, str]:
        """Result column name -> display name (the column label when the domain declares one)."""
        columns = self.domain.columns
        return {
            name: (columns[name].label or name) if name in columns else name
            for name in self.columns
        }

    def _condition_fragment(self, field: str, condition: Any) -> Fragment:
        column = self.column_sql(field)
        if condition is None:
            return Seq(parts=(f"{column} IS NULL",))
        if condition == "not_null":
            return Seq(parts=(f"{column} IS NOT NULL",))
        if isinstance(condition, list):
            if not condition:
                raise UnsupportedFilterSpec("Unsupported filter specification", {"field": field, "spec": condition})
            return Seq(parts=(f"{column} IN (", join_fragments(Param(value=value) for value in condition), ")"))
        if isinstance(condition, tuple):
            if len(condition) == 3 and condition[0] == "between":
                return Seq(parts=(
                    f"{column} BETWEEN ", Param(value=condition[1]), " AND ", Param(value=condition[2]),
                ))
            if len(condition) == 2 and condition[0] in COMPARISON_OPERATORS + _PATTERN_OPERATORS:
                return Seq(parts=(f"{column} {condition[0].upper()} ", Param(value=condition[1])))
            raise UnsupportedFilterSpec("Unsupported filter specification", {"field": field, "spec": condition})
        return Seq(parts=(f"{column} = ", Param(value=condition)))

    def _group_fragment(self, kind: str, children: list[Fragment]) -> Fragment:
        if kind == "not":
            return Seq(parts=("NOT (", children[0], ")"))
        return Seq(parts=("(", join_fragments(children, f" {kind.upper()} "), ")"))

    def _where_fragment(self) -> Optional[Fragment]:
        conditions = [
            fold_filters(node, self._condition_fragment, self._group_fragment)
            for node in self.where_filters
        ]
        if self.registry is not None:
            subfilters = generate_fragment(self.registry)
            if subfilters is not None:
                conditions.append(subfilters)
        if not conditions:
            return None
        return join_fragments(conditions, " AND ")

    def join_order(self) -> list[str]:
        """Joins needed by the selections, filters and ordering, prerequisites first."""
        domain = self.domain
        requested = required_joins_for_selection(domain.columns, self.select_items)
        requested |= required_joins_for_filters(domain, self.where_filters)
        requested |= required_joins_for_selection(domain.columns, [field for field, _ in self.order_by_items])
        requested |= set(self.join_parameters)
        return resolve_order(domain.joins, sorted(requested))

    @property
    def statement(self) -> Fragment:
        """The SELECT statement without its WITH prefix."""
        if not self.select_items:
            raise ValueError("Query has no selections; call select() first")
        domain = self.domain
        select_list = join_fragments(
            Seq(parts=(self._selection_fragment(item), f' AS "{name}"'))
            for item, name in zip(self.select_items, self.columns)
        )
        statement: Fragment = Seq(parts=("SELECT ", select_list, f" FROM {domain.base_table}"))
        for join_name in self.join_order():
            statement = apply_join(domain, statement, join_name, list(self.join_parameters.get(join_name, ())))
        where = self._where_fragment()
        if where is not None:
            statement = Seq(parts=(statement, " WHERE ", where))
        if self.order_by_items:
            order = ", ".join(
                f"{self.column_sql(field)} {'DESC' if descending else 'ASC'}"
                for field, descending in self.order_by_items
            )
            statement = Seq(parts=(statement, f" ORDER BY {order}"))
        if self.limit_value is not None:
            statement = Seq(parts=(statement, f" LIMIT {self.limit_value}"))
        return statement

    @property
    def fragment(self) -> Fragment:
        """The complete statement as a fragment tree (CTE markers first)."""
        if self.ctes:
            return Seq(parts=(*self.ctes, self.statement))
        return self.statement

    def to_sql(self, dialect=None) -> tuple[str, list[Any]]:
        """Return ``(sql, params)`` with ``$N`` placeholders.

        CTE bodies and the main statement share one numbering: each body continues
        after the placeholders of the bodies before it.
        """
        named: list[tuple[str, str]] = []
        params: list[Any] = []
        for cte in self.ctes:
            cte_sql, cte_params = finalize(cte.body, dialect, start=1 + len(params))
            named.append((cte.name, cte_sql))
            params.extend(cte_params)
        main_sql, main_params = finalize(self.statement, dialect, start=1 + len(params))
        params.extend(main_params)
        sql = assemble_with_ctes(named, main_sql)
        logger.debug("%s\n%s", sql, params)
        return sql, params

    def __str__(self) -> str:
        return self.to_sql()[0]


__all__ = ["Query"]
