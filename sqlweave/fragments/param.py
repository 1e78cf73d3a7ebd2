"""Bound parameter fragment."""

from typing import Any, Iterator

from ._bases import Fragment


class Param(Fragment):
    """A bound value; becomes the next ``$N`` placeholder when finalized."""

    value: Any

    def iter_leaves(self) -> Iterator[Fragment]:
        yield self
