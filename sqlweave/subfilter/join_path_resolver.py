"""Resolve relationship paths into concrete join chains against a registered domain."""

from __future__ import annotations
import logging
from typing import Optional, Union

from pydantic import BaseModel

from ..errors import SqlweaveError, UnresolvablePath
from ..schema import Domain, JoinKind, JoinStep, get_domain
from .parser import parse_relationship_path
from .spec import RelationshipPath

logger = logging.getLogger(__name__)


class JoinResolution(BaseModel):
    """Ordered join steps from the base table to the table holding ``target_field``."""

    model_config = {"frozen": True}

    joins: tuple[JoinStep, ...]
    target_table: str
    target_field: Optional[str] = None
    """Column compared by the predicate; ``None`` for ``COUNT(*)`` style aggregations."""
    path_segments: tuple[str, ...] = ()
    is_aggregation: bool = False

    @property
    def is_self(self) -> bool:
        return all(step.is_self for step in self.joins)


def _self_step(table: str) -> JoinStep:
    return JoinStep(from_table=table, to_table=table, kind=JoinKind.SELF)


def _relative_segments(path: RelationshipPath, base_table: str) -> tuple[str, ...]:
    segments = path.path_segments
    if segments and segments[0] == base_table:
        return segments[1:]
    return segments


def _resolve_aggregation(path: RelationshipPath, domain: Domain, base_table: str, relative) -> JoinResolution:
    association = None
    target_field = path.target_field
    if not relative and target_field in domain.associations:
        # "film.actor": aggregate the association rows themselves
        association, target_field = domain.associations[target_field], None
    elif len(relative) == 1 and relative[0] in domain.associations:
        association = domain.associations[relative[0]]
    if association is None:
        if relative:
            raise UnresolvablePath(
                "Cannot resolve aggregation path with available associations",
                {"path": path.raw, "domain": domain.name},
            )
        return JoinResolution(
            joins=(_self_step(base_table),),
            target_table=base_table,
            target_field=target_field,
            path_segments=path.path_segments,
            is_aggregation=True,
        )
    return JoinResolution(
        joins=tuple(association.join_steps(base_table)),
        target_table=association.target_table,
        target_field=target_field,
        path_segments=path.path_segments,
        is_aggregation=True,
    )


def resolve(
    path: Union[RelationshipPath, str], domain_key: str, base_table: Optional[str] = None
) -> JoinResolution:
    """Resolve ``path`` against the domain registered as ``domain_key``.

    Tried in order: a column of the base table (self step), an aggregation (self
    step, or the association's steps when the path names one), an association
    (one or two inner-join steps), a pre-registered recipe keyed by the full path.

    Raises:
        UnknownDomain: If ``domain_key`` is not registered.
        UnresolvablePath: If nothing matches.
    """
    domain = get_domain(domain_key)
    if isinstance(path, str):
        path = parse_relationship_path(path)
    base_table = base_table or domain.base_table
    relative = _relative_segments(path, base_table)

    if not relative and not path.is_aggregation and path.target_field is not None \
            and domain.is_base_column(path.target_field):
        logger.debug("Resolved %s as a base table column", path.raw)
        return JoinResolution(
            joins=(_self_step(base_table),),
            target_table=base_table,
            target_field=path.target_field,
            path_segments=path.path_segments,
        )

    if path.is_aggregation:
        return _resolve_aggregation(path, domain, base_table, relative)

    if len(relative) == 1 and relative[0] in domain.associations:
        association = domain.associations[relative[0]]
        logger.debug("Resolved %s through association %s", path.raw, association.name)
        return JoinResolution(
            joins=tuple(association.join_steps(base_table)),
            target_table=association.target_table,
            target_field=path.target_field,
            path_segments=path.path_segments,
        )

    recipe = domain.paths.get(path.raw)
    if recipe:
        logger.debug("Resolved %s with a registered join recipe", path.raw)
        return JoinResolution(
            joins=tuple(recipe),
            target_table=recipe[-1].to_table,
            target_field=path.target_field,
            path_segments=path.path_segments,
        )

    raise UnresolvablePath(
        "Cannot resolve relationship path with available join configurations",
        {"path": path.raw, "domain": domain.name},
    )


def validate_path(path: Union[RelationshipPath, str], domain_key: str) -> Optional[SqlweaveError]:
    """Return ``None`` when ``path`` resolves, otherwise the error ``resolve`` would raise."""
    try:
        resolve(path, domain_key)
    except SqlweaveError as error:
        return error
    return None
