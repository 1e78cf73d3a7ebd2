"""Base Dialect type: subclasses define placeholder syntax and temporal bounds."""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from ..errors import UsageError


class Dialect(BaseModel, ABC):
    """Base for SQL dialects; subclasses render placeholders and identifiers."""

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Return the bind marker for the 1-based parameter ``index``."""
        ...  # pylint: disable=unnecessary-ellipsis

    def quote_identifier(self, name: str) -> str:
        """Double-quote an identifier, doubling embedded quotes."""
        return '"' + str(name).replace('"', '""') + '"'

    def temporal_bound(self, kind: str, column: str, amount):
        """Fragment comparing ``column`` against a moving lower bound (``within_days``, ...).

        ``amount`` is a fragment, usually a ``Param``.
        """
        raise UsageError(f"{type(self).__name__} has no `{kind}` temporal bound")
