"""PostgreSQL dialect."""

from typing import ClassVar

from sqlweave.fragments import Seq

from .base import Dialect


class PostgresDialect(Dialect):
    """``$1, $2, ...`` placeholders; temporal bounds built with ``make_interval``."""

    INTERVAL_BOUNDS: ClassVar[dict[str, tuple[str, str]]] = {
        "recent_years": ("CURRENT_DATE", "years"),
        "within_days": ("CURRENT_DATE", "days"),
        "within_hours": ("NOW()", "hours"),
    }
    """Temporal kind -> (origin expression, ``make_interval`` unit)."""

    def placeholder(self, index: int) -> str:
        return f"${index}"

    def temporal_bound(self, kind: str, column: str, amount):
        """``column > (origin - make_interval(unit => $N))``."""
        if kind not in self.INTERVAL_BOUNDS:
            return super().temporal_bound(kind, column, amount)
        origin, unit = self.INTERVAL_BOUNDS[kind]
        return Seq(parts=(f"{column} > ({origin} - make_interval({unit} => ", amount, "))"))
