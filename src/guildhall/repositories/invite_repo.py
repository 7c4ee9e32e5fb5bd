# src/guildhall/repositories/invite_repo.py
"""Data access helpers for guild invites."""
from __future__ import annotations

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from guildhall.models.invite import Invite

__all__ = ["InviteRepository"]


class InviteRepository:
    """Thin wrapper around database access for invites."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, invite_id: int) -> Invite | None:
        return self.session.get(Invite, invite_id)

    def get_by_code(self, code: str) -> Invite | None:
        result = self.session.execute(select(Invite).where(Invite.code == code))
        return result.scalars().first()

    def list_for_guild(self, guild_id: int) -> list[Invite]:
        result = self.session.execute(
            select(Invite).where(Invite.guild_id == guild_id).order_by(Invite.id)
        )
        return list(result.scalars())

    def add(self, invite: Invite) -> Invite:
        self.session.add(invite)
        self.session.flush()
        return invite

    def consume_use(self, invite: Invite) -> bool:
        """Increment the use counter unless the invite is already exhausted.

        The limit is checked in the UPDATE itself, so concurrent redemptions
        can never push ``uses`` past ``max_uses``.

        Returns:
            True if a use was recorded, False if the invite is exhausted.
        """
        result = self.session.execute(
            update(Invite)
            .where(
                Invite.id == invite.id,
                or_(Invite.max_uses == 0, Invite.uses < Invite.max_uses),
            )
            .values(uses=Invite.uses + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.session.expire(invite, ["uses"])
        return True

    def delete(self, invite: Invite) -> None:
        self.session.delete(invite)
        self.session.flush()
