"""Inline tables built from literal rows with ``VALUES``.

    clause = create_values_clause(
        [["PG", "Family Friendly", 1], ["R", "Adult", 3]],
        columns=["rating_code", "description", "sort_order"],
        alias="rating_lookup",
    )
    build_values_clause(clause)
    # VALUES ($1, $2, $3), ($4, $5, $6) AS rating_lookup ("rating_code", "description", "sort_order")

Every value is bound as a parameter.
"""

from __future__ import annotations
import datetime
import enum
import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field as PydanticField

from .errors import UsageError, ValuesValidationError
from .fragments import Cte, Fragment, Param, Seq, join_fragments
from .fragments.finalize import resolve_dialect

logger = logging.getLogger(__name__)

_TYPE_SAMPLE_SIZE = 10


class ValuesDataType(str, enum.Enum):
    LIST_OF_LISTS = "list_of_lists"
    LIST_OF_MAPS = "list_of_maps"


class ValuesClause(BaseModel):
    model_config = {"frozen": True}

    data: tuple[tuple[Any, ...], ...]
    """Rows as value tuples, ordered like ``columns``."""
    columns: tuple[str, ...]
    alias: str = "values_table"
    data_type: ValuesDataType
    column_types: dict[str, str] = PydanticField(default_factory=dict)
    """Column -> type inferred from the first non-null sampled value."""
    validated: bool = False


def _infer_type(values: Iterable[Any]) -> str:
    value = next((value for value in values if value is not None), None)
    if value is None:
        return "unknown"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, (float, Decimal)):
        return "decimal"
    if isinstance(value, str):
        return "string"
    if isinstance(value, datetime.datetime):
        return "datetime"
    if isinstance(value, datetime.date):
        return "date"
    return "unknown"


def _list_rows(data: list, columns: Optional[list[str]]) -> tuple[list[tuple], list[str]]:
    width = len(data[0])
    for index, row in enumerate(data):
        if not isinstance(row, (list, tuple)):
            raise ValuesValidationError("Unsupported data format for VALUES clause", {"row": index + 1})
        if len(row) != width:
            raise ValuesValidationError(
                f"Row {index + 1} has {len(row)} columns, expected {width}",
                {"row": index + 1, "expected": width, "actual": len(row)},
            )
    if columns is None:
        columns = [f"column{position}" for position in range(1, width + 1)]
    elif len(columns) != width:
        raise ValuesValidationError(
            f"Number of explicit columns ({len(columns)}) doesn't match data columns ({width})",
            {"columns": list(columns), "width": width},
        )
    return [tuple(row) for row in data], [str(column) for column in columns]


def _map_rows(data: list, columns: Optional[list[str]]) -> tuple[list[tuple], list[str]]:
    keys = set(data[0])
    for index, row in enumerate(data):
        if not isinstance(row, dict):
            raise ValuesValidationError("Unsupported data format for VALUES clause", {"row": index + 1})
        if set(row) != keys:
            raise ValuesValidationError(
                f"Row {index + 1} has different keys than first row", {"row": index + 1}
            )
    ordered = sorted(keys, key=str)
    if columns is not None:
        if sorted(map(str, columns)) != sorted(map(str, keys)):
            raise ValuesValidationError(
                "Explicit columns don't match map keys",
                {"columns": list(columns), "keys": [str(key) for key in ordered]},
            )
        by_name = {str(key): key for key in keys}
        ordered = [by_name[str(column)] for column in columns]
    return [tuple(row[key] for key in ordered) for row in data], [str(key) for key in ordered]


def create_values_clause(
    data: list, columns: Optional[list[str]] = None, alias: str = "values_table"
) -> ValuesClause:
    """Validate ``data`` and return a validated :class:`ValuesClause`.

    Rows must be all lists of one width, or all dicts with identical keys (the
    columns are then the sorted keys, unless ``columns`` gives an order). List
    rows without explicit ``columns`` get ``column1``, ``column2``...

    Raises:
        ValuesValidationError: On empty, mixed or ragged data, or mismatched columns.
    """
    if not data:
        raise ValuesValidationError("VALUES clause cannot have empty data")
    if isinstance(data[0], (list, tuple)):
        data_type = ValuesDataType.LIST_OF_LISTS
        rows, names = _list_rows(list(data), columns)
    elif isinstance(data[0], dict):
        data_type = ValuesDataType.LIST_OF_MAPS
        rows, names = _map_rows(list(data), columns)
    else:
        raise ValuesValidationError("Unsupported data format for VALUES clause", {"row": 1})
    sample = rows[:_TYPE_SAMPLE_SIZE]
    column_types = {
        name: _infer_type(row[position] for row in sample) for position, name in enumerate(names)
    }
    logger.debug("VALUES clause %s: %d row(s), columns %s", alias, len(rows), names)
    return ValuesClause(
        data=tuple(rows),
        columns=tuple(names),
        alias=alias,
        data_type=data_type,
        column_types=column_types,
        validated=True,
    )


def _require_validated(clause: ValuesClause) -> None:
    if not clause.validated:
        raise UsageError("VALUES clause specification must be validated before SQL generation")


def _rows(clause: ValuesClause) -> Fragment:
    return join_fragments(
        Seq(parts=("(", join_fragments(Param(value=value) for value in row), ")"))
        for row in clause.data
    )


def _column_list(clause: ValuesClause, dialect) -> str:
    return "(" + ", ".join(dialect.quote_identifier(column) for column in clause.columns) + ")"


def build_values_clause(clause: ValuesClause, dialect=None) -> Fragment:
    """``VALUES (...), (...) AS alias ("c1", "c2")``.

    Raises:
        UsageError: If ``clause`` was not validated.
    """
    _require_validated(clause)
    dialect = resolve_dialect(dialect)
    return Seq(parts=("VALUES ", _rows(clause), f" AS {clause.alias} {_column_list(clause, dialect)}"))


def build_values_cte(clause: ValuesClause, dialect=None) -> Cte:
    """A ``Cte`` named after the alias: ``SELECT * FROM (VALUES ...) AS alias ("c1", "c2")``.

    Raises:
        UsageError: If ``clause`` was not validated.
    """
    _require_validated(clause)
    dialect = resolve_dialect(dialect)
    return Cte(
        name=clause.alias,
        body=Seq(parts=(
            "SELECT * FROM (VALUES ",
            _rows(clause),
            f") AS {clause.alias} {_column_list(clause, dialect)}",
        )),
    )
