"""Parsed subfilter specifications: relationship paths, filter shapes, leaf and compound specs."""

from __future__ import annotations
import datetime
import enum
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field as PydanticField


class Strategy(str, enum.Enum):
    EXISTS = "exists"
    IN = "in"


class CompoundType(str, enum.Enum):
    AND = "and"
    OR = "or"


class RelationshipPath(BaseModel):
    """A dotted path such as ``film.category.name``, split into tables and target field."""

    model_config = {"frozen": True}

    path_segments: tuple[str, ...]
    """Table names leading to the target, base table first (``("film", "category")``)."""
    target_table: str
    target_field: Optional[str] = None
    """Final segment; ``None`` for single-segment paths."""
    is_aggregation: bool = False

    @property
    def raw(self) -> str:
        segments = self.path_segments + ((self.target_field,) if self.target_field else ())
        return ".".join(segments)


ScalarValue = Union[bool, int, float, Decimal, str, datetime.datetime, datetime.date]

COMPARISON_OPERATORS = (">", "<", ">=", "<=", "!=", "<>", "=")
AGGREGATION_FUNCTIONS = ("count", "sum", "avg", "min", "max")
AGGREGATION_OPERATORS = (">", "<", ">=", "<=", "=", "!=")


class Equality(BaseModel):
    model_config = {"frozen": True}
    kind: Literal["equality"] = "equality"
    value: Any


class InList(BaseModel):
    model_config = {"frozen": True}
    kind: Literal["in_list"] = "in_list"
    values: tuple[Any, ...]


class Comparison(BaseModel):
    model_config = {"frozen": True}
    kind: Literal["comparison"] = "comparison"
    op: str
    value: Any


class Range(BaseModel):
    model_config = {"frozen": True}
    kind: Literal["range"] = "range"
    min: Any
    max: Any


class Aggregation(BaseModel):
    """``fn(field) op value`` over the related rows (``("count", ">", 5)``)."""

    model_config = {"frozen": True}
    kind: Literal["aggregation"] = "aggregation"
    fn: str
    op: str
    value: Any


class TemporalKind(str, enum.Enum):
    RECENT_YEARS = "recent_years"
    WITHIN_DAYS = "within_days"
    WITHIN_HOURS = "within_hours"
    SINCE_DATE = "since_date"


class Temporal(BaseModel):
    model_config = {"frozen": True}
    kind: Literal["temporal"] = "temporal"
    temporal: TemporalKind
    value: Any


FilterSpec = Annotated[
    Union[Equality, InList, Comparison, Range, Aggregation, Temporal],
    PydanticField(discriminator="kind"),
]


class Spec(BaseModel):
    """One leaf subfilter."""

    model_config = {"frozen": True}

    relationship_path: RelationshipPath
    filter_spec: FilterSpec
    strategy: Strategy = Strategy.EXISTS
    negate: bool = False


class CompoundSpec(BaseModel):
    """An AND/OR group of specs, possibly nested."""

    model_config = {"frozen": True}

    type: CompoundType
    children: tuple[Union[Spec, CompoundSpec], ...]

    def iter_specs(self):
        """Leaf specs in order, depth-first."""
        for child in self.children:
            if isinstance(child, CompoundSpec):
                yield from child.iter_specs()
            else:
                yield child
