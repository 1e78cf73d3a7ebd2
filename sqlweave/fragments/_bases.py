"""Base fragment type for the SQL fragment tree."""

from __future__ import annotations
from typing import Any, Iterator

from pydantic import BaseModel


class Fragment(BaseModel):
    """Base type for all fragment nodes.

    A fragment tree mixes literal SQL text, bound parameter markers and named
    CTE markers. Nodes are immutable; the position of a ``Param`` in a depth-first,
    left-to-right walk decides its placeholder number, so trees are never reordered.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    def iter_leaves(self) -> Iterator[Fragment]:
        """Yield leaf nodes (text, params, CTE markers) depth-first, left to right.

        CTE markers are yielded as leaves; their bodies are not walked.
        """
        raise NotImplementedError("Subclasses must implement `iter_leaves`")

    @property
    def values(self) -> tuple[Any, ...]:
        """Bound values of the ``Param`` leaves outside CTE markers, in placeholder order."""
        from .param import Param
        return tuple(leaf.value for leaf in self.iter_leaves() if isinstance(leaf, Param))

    def __add__(self, other: Any):
        """Concatenate two fragments (strings are taken as literal SQL text)."""
        from .sequence import Seq
        return Seq(parts=(self, other))

    def __radd__(self, other: Any):
        from .sequence import Seq
        return Seq(parts=(other, self))
