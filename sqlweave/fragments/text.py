"""Literal SQL text fragment."""

from typing import Iterator

from ._bases import Fragment


class Text(Fragment):
    """Literal SQL, emitted verbatim by the finalizer."""

    text: str

    def iter_leaves(self) -> Iterator[Fragment]:
        yield self
