"""SQL dialects. Only PostgreSQL-style ``$N`` placeholders are targeted."""

from .base import Dialect
from .postgres import PostgresDialect

__all__ = [
    "Dialect",
    "PostgresDialect",
]
