"""SQL fragment tree and its finalizer.

Builders produce trees of ``Text`` (literal SQL), ``Seq`` (ordered concatenation),
``Param`` (bound value) and ``Cte`` (named CTE marker) nodes. ``finalize`` walks a
tree depth-first, left to right, and returns SQL with ``$N`` placeholders plus the
bound values in the same order; ``finalize_with_ctes`` additionally hoists CTEs.
"""

from ._bases import Fragment
from .cte import Cte
from .finalize import assemble_with_ctes, finalize, finalize_with_ctes
from .param import Param
from .sequence import Seq, join_fragments
from .text import Text

__all__ = [
    "Cte",
    "Fragment",
    "Param",
    "Seq",
    "Text",
    "assemble_with_ctes",
    "finalize",
    "finalize_with_ctes",
    "join_fragments",
]
