"""Named common table expression marker."""

from typing import Iterator

from ._bases import Fragment


class Cte(Fragment):
    """Marks ``body`` as a named CTE.

    ``finalize_with_ctes`` hoists these markers out of the tree and numbers the
    body's placeholders independently; plain ``finalize`` refuses them.
    """

    name: str
    body: Fragment

    def iter_leaves(self) -> Iterator[Fragment]:
        yield self
