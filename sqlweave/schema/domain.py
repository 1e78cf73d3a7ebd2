"""Domain configuration and the named domain registry."""

from __future__ import annotations
import logging
from typing import Any, Optional

from pydantic import BaseModel, Field as PydanticField, model_validator

from ..errors import UnknownDomain, UnknownReference
from .association import Association
from .column import ColumnDef
from .join import JoinDef, JoinStep

logger = logging.getLogger(__name__)


class Domain(BaseModel):
    """Read-only description of one queryable domain.

    Can be built from plain dicts; entries of ``columns``, ``joins`` and
    ``associations`` take their ``name`` from their key when it is omitted.
    """

    model_config = {"frozen": True}

    name: str
    base_table: str
    primary_key: str = "id"
    columns: dict[str, ColumnDef] = PydanticField(default_factory=dict)
    """Field reference -> column metadata."""
    joins: dict[str, JoinDef] = PydanticField(default_factory=dict)
    """Join name -> join definition (forms a forest through ``requires_join``)."""
    associations: dict[str, Association] = PydanticField(default_factory=dict)
    """Association name -> association reachable from the base table."""
    paths: dict[str, list[JoinStep]] = PydanticField(default_factory=dict)
    """Full relationship path (``film.actor.first_name``) -> pre-registered join recipe."""

    @model_validator(mode="before")
    @classmethod
    def _default_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for section in ("joins", "associations"):
            entries = data.get(section)
            if isinstance(entries, dict):
                data[section] = {
                    key: ({"name": key} | value) if isinstance(value, dict) else value
                    for key, value in entries.items()
                }
        columns = data.get("columns")
        if isinstance(columns, dict):
            data["columns"] = {
                key: ({"name": key.rsplit(".", 1)[-1]} | value) if isinstance(value, dict) else value
                for key, value in columns.items()
            }
        return data

    def get_column(self, field: str) -> ColumnDef:
        try:
            return self.columns[field]
        except KeyError as error:
            raise UnknownReference(
                f"Unknown field `{field}` in domain `{self.name}`",
                {"field": field, "domain": self.name},
            ) from error

    def get_join(self, name: str) -> JoinDef:
        try:
            return self.joins[name]
        except KeyError as error:
            raise UnknownReference(
                f"Unknown join `{name}` in domain `{self.name}`",
                {"join": name, "domain": self.name},
            ) from error

    def is_base_column(self, field: str) -> bool:
        """True when ``field`` is declared and lives on the base table."""
        column = self.columns.get(field)
        return column is not None and column.requires_join is None


_domains: dict[str, Domain] = {}


def register_domain(domain: Domain | dict, key: Optional[str] = None) -> Domain:
    """Register ``domain`` under ``key`` (defaults to ``domain.name``); dicts are validated first."""
    if not isinstance(domain, Domain):
        domain = Domain.model_validate(domain)
    key = key or domain.name
    if key in _domains:
        logger.info("Replacing domain configuration `%s`", key)
    _domains[key] = domain
    return domain


def unregister_domain(key: str) -> None:
    _domains.pop(key, None)


def get_domain(key: str) -> Domain:
    """Return the domain registered under ``key``.

    Raises:
        UnknownDomain: If nothing is registered under ``key``.
    """
    try:
        return _domains[key]
    except KeyError as error:
        raise UnknownDomain(
            "Domain configuration not found",
            {"domain": key, "available": sorted(_domains)},
        ) from error
