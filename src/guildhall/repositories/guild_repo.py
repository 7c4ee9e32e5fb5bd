# src/guildhall/repositories/guild_repo.py
"""Data access helpers for the guild aggregate."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from guildhall.core.errors import InternalFailureError
from guildhall.models.channel import Channel
from guildhall.models.guild import Guild, GuildMember, Role, RoleMember
from guildhall.models.invite import Invite
from guildhall.models.message import Message

__all__ = ["GuildRepository"]

logger = logging.getLogger(__name__)


class GuildRepository:
    """Persistence for guilds together with their members and roles.

    Mutating helpers only flush; the caller owns the transaction so that
    multi-part transitions commit or roll back as a unit.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, guild_id: int) -> Guild | None:
        return self.session.get(Guild, guild_id)

    def list_for_member(self, user_id: int) -> list[Guild]:
        """Return guilds the user belongs to, oldest first."""
        result = self.session.execute(
            select(Guild)
            .join(GuildMember, GuildMember.guild_id == Guild.id)
            .where(GuildMember.user_id == user_id)
            .order_by(Guild.id)
        )
        return list(result.scalars().unique())

    def add(self, guild: Guild) -> Guild:
        self.session.add(guild)
        self.session.flush()
        return guild

    def add_member(self, guild: Guild, user_id: int) -> None:
        """Add a user to the guild and to its ``@everyone`` role."""
        everyone = guild.everyone_role
        if everyone is None:
            logger.error("Guild %s has no @everyone role", guild.id)
            raise InternalFailureError()
        guild.member_links.append(GuildMember(user_id=user_id))
        everyone.member_links.append(RoleMember(user_id=user_id))
        self.session.flush()

    def remove_member(self, guild: Guild, user_id: int) -> None:
        """Remove a user from the guild and from every role in it."""
        guild.member_links = [link for link in guild.member_links if link.user_id != user_id]
        for role in guild.roles:
            role.member_links = [link for link in role.member_links if link.user_id != user_id]
        self.session.flush()

    def add_role(self, guild: Guild, role: Role) -> Role:
        guild.roles.append(role)
        self.session.flush()
        return role

    def delete_role(self, guild: Guild, role: Role) -> None:
        guild.roles.remove(role)
        self.session.flush()

    def add_role_member(self, role: Role, user_id: int) -> None:
        role.member_links.append(RoleMember(user_id=user_id))
        self.session.flush()

    def remove_role_member(self, role: Role, user_id: int) -> None:
        role.member_links = [link for link in role.member_links if link.user_id != user_id]
        self.session.flush()

    def delete(self, guild: Guild) -> None:
        """Delete a guild with its channels, their messages, invites and roles."""
        channel_ids = select(Channel.id).where(Channel.guild_id == guild.id)
        self.session.execute(delete(Message).where(Message.channel_id.in_(channel_ids)))
        self.session.execute(delete(Channel).where(Channel.guild_id == guild.id))
        self.session.execute(delete(Invite).where(Invite.guild_id == guild.id))
        self.session.delete(guild)
        self.session.flush()
