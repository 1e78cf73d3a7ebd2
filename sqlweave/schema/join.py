"""Join definitions and resolved join steps."""

import enum
from typing import Optional

from pydantic import BaseModel, Field as PydanticField

from .parameterized_join import ParameterDefinition


class JoinDef(BaseModel):
    """A named LEFT JOIN from a prerequisite (or the base table) to ``target_table``.

    Rendered as ``LEFT JOIN target_table AS name ON prerequisite.owner_key = name.joined_key``.
    """

    model_config = {"frozen": True}

    name: str
    target_table: str
    owner_key: str
    """Key column on the prerequisite side."""
    joined_key: str
    """Key column on ``target_table``."""
    requires_join: Optional[str] = None
    """Prerequisite join name; ``None`` means the join hangs off the base table."""
    parameters: list[ParameterDefinition] = PydanticField(default_factory=list)
    """Ordered parameter definitions for parameterized joins (``posts:published.title``)."""
    condition: Optional[str] = None
    """Extra ON condition template with ``$param_<name>`` markers."""

    @property
    def is_parameterized(self) -> bool:
        return bool(self.parameters)


class JoinKind(str, enum.Enum):
    INNER = "inner"
    LEFT = "left"
    SELF = "self"


class JoinStep(BaseModel):
    """One step of a resolved join chain.

    ``kind == SELF`` marks a step that stays on the base table and emits no join.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    from_table: str = PydanticField(alias="from")
    to_table: str = PydanticField(alias="to")
    on: Optional[str] = None
    """ON condition (``a.x = b.y``); ``None`` for self steps."""
    kind: JoinKind = JoinKind.INNER

    @property
    def is_self(self) -> bool:
        return self.kind is JoinKind.SELF
