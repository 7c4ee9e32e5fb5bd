# src/guildhall/repositories/channel_repo.py
"""Data access helpers for channels."""
from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, aliased

from guildhall.models.channel import Channel
from guildhall.models.guild import Guild
from guildhall.models.message import Message

__all__ = ["ChannelRepository"]


class ChannelRepository:
    """Thin wrapper around database access for channel entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, channel_id: int) -> Channel | None:
        return self.session.get(Channel, channel_id)

    def list_for_guild(self, guild_id: int) -> list[Channel]:
        """Return a guild's channels sorted by category, then name."""
        result = self.session.execute(
            select(Channel)
            .where(Channel.guild_id == guild_id)
            .order_by(Channel.category, Channel.name, Channel.id)
        )
        return list(result.scalars())

    def add(self, channel: Channel) -> Channel:
        self.session.add(channel)
        self.session.flush()
        return channel

    def delete_unless_last(self, channel: Channel) -> bool:
        """Delete a channel and its messages unless it is its guild's only channel.

        The guild row is locked and the sibling count is evaluated inside the
        DELETE, so concurrent deletes can never leave a guild without channels.

        Returns:
            True if the channel was deleted, False if it was the last one.
        """
        self.session.execute(
            select(Guild.id).where(Guild.id == channel.guild_id).with_for_update()
        )
        sibling = aliased(Channel)
        siblings = (
            select(func.count())
            .select_from(sibling)
            .where(sibling.guild_id == channel.guild_id)
            .scalar_subquery()
        )
        self.session.execute(delete(Message).where(Message.channel_id == channel.id))
        result = self.session.execute(
            delete(Channel)
            .where(Channel.id == channel.id, siblings > 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.session.expunge(channel)
        return True
