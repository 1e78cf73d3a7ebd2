"""Ordered sequence of fragments."""

from __future__ import annotations
from typing import Any, Iterable, Iterator

from pydantic import Field as PydanticField, field_validator

from ._bases import Fragment
from .text import Text


def _coerce(part: Any) -> Fragment:
    """Turn a string into ``Text`` and a list/tuple into ``Seq``; fragments pass through."""
    if isinstance(part, Fragment):
        return part
    if isinstance(part, str):
        return Text(text=part)
    if isinstance(part, (list, tuple)):
        return Seq(parts=part)
    raise ValueError(
        f"Cannot use {part!r} ({type(part).__name__}) as a fragment; wrap literal values in Param"
    )


class Seq(Fragment):
    """Fragments concatenated in order, with no separator inserted."""

    parts: tuple[Fragment, ...] = PydanticField(default_factory=tuple)

    @field_validator("parts", mode="before")
    @classmethod
    def _coerce_parts(cls, parts: Any) -> tuple[Fragment, ...]:
        if isinstance(parts, (str, Fragment)):
            parts = (parts,)
        return tuple(_coerce(part) for part in parts if part is not None)

    def iter_leaves(self) -> Iterator[Fragment]:
        for part in self.parts:
            yield from part.iter_leaves()


def join_fragments(parts: Iterable[Any], separator: str = ", ") -> Seq:
    """Interleave ``separator`` text between ``parts`` (e.g. for ``IN ($1, $2)`` lists)."""
    joined: list[Any] = []
    for index, part in enumerate(parts):
        if index:
            joined.append(separator)
        joined.append(part)
    return Seq(parts=joined)
