"""Associations reachable from a domain's base table."""

from typing import Optional

from pydantic import BaseModel

from .join import JoinKind, JoinStep


class Association(BaseModel):
    """A relation from the base table to ``target_table``, optionally through a junction table.

    Without ``via``: ``base.owner_key = target.joined_key``.
    With ``via``: ``base.owner_key = via.via_owner_key`` then
    ``via.via_joined_key = target.joined_key`` (keys on the junction default to
    ``owner_key`` / ``joined_key``).
    """

    model_config = {"frozen": True}

    name: str
    target_table: str
    owner_key: str
    joined_key: str
    via: Optional[str] = None
    via_owner_key: Optional[str] = None
    via_joined_key: Optional[str] = None

    def join_steps(self, base_table: str) -> list[JoinStep]:
        """Inner-join steps leading from ``base_table`` to ``target_table``."""
        if self.via is None:
            return [
                JoinStep(
                    from_table=base_table,
                    to_table=self.target_table,
                    on=f"{base_table}.{self.owner_key} = {self.target_table}.{self.joined_key}",
                    kind=JoinKind.INNER,
                )
            ]
        via_owner_key = self.via_owner_key or self.owner_key
        via_joined_key = self.via_joined_key or self.joined_key
        return [
            JoinStep(
                from_table=base_table,
                to_table=self.via,
                on=f"{base_table}.{self.owner_key} = {self.via}.{via_owner_key}",
                kind=JoinKind.INNER,
            ),
            JoinStep(
                from_table=self.via,
                to_table=self.target_table,
                on=f"{self.via}.{via_joined_key} = {self.target_table}.{self.joined_key}",
                kind=JoinKind.INNER,
            ),
        ]
