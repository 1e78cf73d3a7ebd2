"""Persistent collection of resolved subfilters and their AND/OR groupings.

Every operation returns a new :class:`Registry`; paths are parsed and resolved
when they are added so that configuration problems surface immediately.

    registry = Registry.new("film")
    registry = registry.add_subfilter("film.category.name", "Action")
    registry = registry.add_compound("or", [("film.rating", "R"), ("film.rating", "PG-13")])
"""

from __future__ import annotations
import enum
import logging
from collections import Counter
from typing import Any, Iterable, Iterator, Optional, Union

from pydantic import BaseModel, Field as PydanticField

from ..errors import DuplicateSubfilterId, InvalidOption, SubfilterNotFound, UnsupportedFilterSpec
from ..schema import get_domain
from .join_path_resolver import JoinResolution, resolve
from .parser import (
    as_compound_type,
    check_item_options,
    is_compound_item,
    parse,
    split_compound_item,
)
from .spec import Aggregation, CompoundSpec, CompoundType, Spec, Strategy

logger = logging.getLogger(__name__)


class CompoundOp(BaseModel):
    """An AND/OR group referencing subfilter ids (or nested groups)."""

    model_config = {"frozen": True}

    type: CompoundType
    children: tuple[Union[str, CompoundOp], ...]

    def iter_ids(self) -> Iterator[str]:
        for child in self.children:
            if isinstance(child, CompoundOp):
                yield from child.iter_ids()
            else:
                yield child


class JoinComplexity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_join_count(cls, count: int) -> JoinComplexity:
        if count <= 3:
            return cls.LOW
        if count <= 8:
            return cls.MEDIUM
        return cls.HIGH


class Analysis(BaseModel):
    model_config = {"frozen": True}

    subfilter_count: int
    join_complexity: JoinComplexity
    strategy_distribution: dict[Strategy, int]


class Registry(BaseModel):
    model_config = {"frozen": True}

    domain_key: str
    base_table: str
    subfilters: dict[str, Spec] = PydanticField(default_factory=dict)
    """Subfilter id -> parsed spec, in insertion order."""
    join_resolutions: dict[str, JoinResolution] = PydanticField(default_factory=dict)
    compound_ops: tuple[CompoundOp, ...] = ()
    strategy_overrides: dict[str, Strategy] = PydanticField(default_factory=dict)
    sequence: int = 0
    """Counter used for generated ids."""

    @classmethod
    def new(cls, domain_key: str, base_table: Optional[str] = None) -> Registry:
        """Create an empty registry; ``base_table`` defaults to the domain's base table."""
        if base_table is None:
            base_table = get_domain(domain_key).base_table
        return cls(domain_key=domain_key, base_table=base_table)

    def _clone_with(self, **changes) -> Registry:
        return self.model_copy(update=changes)

    def _resolve(self, spec: Spec) -> JoinResolution:
        resolution = resolve(spec.relationship_path, self.domain_key, self.base_table)
        filter_spec = spec.filter_spec
        if isinstance(filter_spec, Aggregation) and filter_spec.fn != "count" and resolution.target_field is None:
            raise UnsupportedFilterSpec(
                f"Aggregation `{filter_spec.fn}` needs a target field",
                {"path": spec.relationship_path.raw, "fn": filter_spec.fn},
            )
        return resolution

    def _next_id(self, path: str) -> tuple[str, int]:
        """First free generated id ``<path>_<n>`` after ``sequence``, and its ``n``."""
        sequence = self.sequence + 1
        prefix = path.replace(".", "_")
        while f"{prefix}_{sequence}" in self.subfilters:
            sequence += 1
        return f"{prefix}_{sequence}", sequence

    def add_subfilter(
        self,
        path: str,
        value: Any,
        *,
        id: Optional[str] = None,
        strategy: Any = None,
        negate: Any = False,
    ) -> Registry:
        """Parse, resolve and record one subfilter under ``id`` (generated when omitted).

        Raises:
            DuplicateSubfilterId: If ``id`` is already used.
        """
        spec = parse(path, value, strategy=strategy, negate=negate)
        resolution = self._resolve(spec)
        if id is None:
            subfilter_id, sequence = self._next_id(path)
        else:
            subfilter_id, sequence = id, self.sequence + 1
        if subfilter_id in self.subfilters:
            raise DuplicateSubfilterId(
                f"Subfilter id `{subfilter_id}` already exists", {"id": subfilter_id}
            )
        logger.debug("Adding subfilter %s on %s", subfilter_id, path)
        return self._clone_with(
            subfilters=self.subfilters | {subfilter_id: spec},
            join_resolutions=self.join_resolutions | {subfilter_id: resolution},
            sequence=sequence,
        )

    def add_compound(self, type: Any, items: Iterable[Any]) -> Registry:
        """Record every item as its own subfilter and append one AND/OR group over their ids.

        Items are ``(path, value)``, ``(path, value, options)`` or nested
        ``("and" | "or", [items])`` groups. Options may carry ``id``.
        """
        registry = self

        def build(group_type: Any, group_items: Iterable[Any]) -> CompoundOp:
            nonlocal registry
            children: list[Union[str, CompoundOp]] = []
            for item in group_items:
                if is_compound_item(item):
                    children.append(build(item[0], item[1]))
                    continue
                path, value, options = split_compound_item(item)
                options = dict(options)
                subfilter_id = options.pop("id", None)
                check_item_options(options)
                registry = registry.add_subfilter(path, value, id=subfilter_id, **options)
                children.append(subfilter_id or next(reversed(registry.subfilters)))
            return CompoundOp(type=as_compound_type(group_type), children=tuple(children))

        op = build(type, items)
        return registry._clone_with(compound_ops=registry.compound_ops + (op,))

    def add_compound_spec(self, compound: CompoundSpec) -> Registry:
        """Record an already parsed :class:`CompoundSpec`."""
        registry = self

        def build(group: CompoundSpec) -> CompoundOp:
            nonlocal registry
            children: list[Union[str, CompoundOp]] = []
            for child in group.children:
                if isinstance(child, CompoundSpec):
                    children.append(build(child))
                    continue
                subfilter_id, sequence = registry._next_id(child.relationship_path.raw)
                resolution = registry._resolve(child)
                registry = registry._clone_with(
                    subfilters=registry.subfilters | {subfilter_id: child},
                    join_resolutions=registry.join_resolutions | {subfilter_id: resolution},
                    sequence=sequence,
                )
                children.append(subfilter_id)
            return CompoundOp(type=group.type, children=tuple(children))

        op = build(compound)
        return registry._clone_with(compound_ops=registry.compound_ops + (op,))

    def _require(self, subfilter_id: str) -> None:
        if subfilter_id not in self.subfilters:
            raise SubfilterNotFound(
                f"Subfilter `{subfilter_id}` not found", {"id": subfilter_id}
            )

    def remove_subfilter(self, subfilter_id: str) -> Registry:
        """Drop a subfilter and its resolution. Compound groups keep referencing its id."""
        self._require(subfilter_id)
        subfilters = dict(self.subfilters)
        join_resolutions = dict(self.join_resolutions)
        strategy_overrides = dict(self.strategy_overrides)
        del subfilters[subfilter_id]
        del join_resolutions[subfilter_id]
        strategy_overrides.pop(subfilter_id, None)
        return self._clone_with(
            subfilters=subfilters,
            join_resolutions=join_resolutions,
            strategy_overrides=strategy_overrides,
        )

    def override_strategy(self, subfilter_id: str, strategy: Any) -> Registry:
        """Force ``strategy`` for one subfilter at generation time.

        Raises:
            SubfilterNotFound: If ``subfilter_id`` is not registered.
        """
        self._require(subfilter_id)
        try:
            strategy = Strategy(strategy)
        except ValueError as error:
            raise InvalidOption("Invalid strategy option", {"strategy": strategy}) from error
        return self._clone_with(
            strategy_overrides=self.strategy_overrides | {subfilter_id: strategy},
        )

    def effective_strategy(self, subfilter_id: str) -> Strategy:
        return self.strategy_overrides.get(subfilter_id, self.subfilters[subfilter_id].strategy)

    def referenced_ids(self) -> set[str]:
        """Ids referenced by any compound group, dangling or not."""
        return {subfilter_id for op in self.compound_ops for subfilter_id in op.iter_ids()}

    def analyze(self) -> Analysis:
        steps = {
            step
            for resolution in self.join_resolutions.values()
            for step in resolution.joins
            if not step.is_self
        }
        return Analysis(
            subfilter_count=len(self.subfilters),
            join_complexity=JoinComplexity.from_join_count(len(steps)),
            strategy_distribution=dict(Counter(
                self.effective_strategy(subfilter_id) for subfilter_id in self.subfilters
            )),
        )
