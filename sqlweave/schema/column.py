"""Column metadata exposed by a domain configuration."""

from typing import Optional

from pydantic import BaseModel


class ColumnDef(BaseModel):
    """A selectable/filterable field of a domain.

    Domains key their columns by field reference (``rating``, ``category.name``);
    ``requires_join`` names the join that must be applied before the column can be
    read, or ``None`` for columns of the base table.
    """

    model_config = {"frozen": True}

    name: str
    """Column name in its table."""
    requires_join: Optional[str] = None
    """Join (alias) the column lives on; ``None`` means the base table."""
    type: str = "string"
    """Declared type (``string``, ``integer``, ``float``, ``boolean``, ``date``, ...)."""
    label: Optional[str] = None
    """Display name used in the result alias mapping; defaults to the field reference."""
