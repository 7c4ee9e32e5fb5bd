# src/guildhall/models/guild.py
"""SQLAlchemy models for the guild aggregate: guilds, members and roles.

Roles and both membership tables are owned by the guild and loaded with it, so
a single guild snapshot is enough to resolve permissions for any member.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guildhall.db.session import Base
from guildhall.db.time import utcnow

EVERYONE_ROLE_NAME = "@everyone"
ADMIN_ROLE_NAME = "Admin"
DEFAULT_ROLE_COLOR = "#99AAB5"
ADMIN_ROLE_COLOR = "#F04747"


class Permission(str, Enum):
    """Fixed vocabulary of guild capabilities a role can grant."""

    ADMINISTRATOR = "ADMINISTRATOR"
    MANAGE_GUILD = "MANAGE_GUILD"
    MANAGE_ROLES = "MANAGE_ROLES"
    MANAGE_CHANNELS = "MANAGE_CHANNELS"
    KICK_MEMBERS = "KICK_MEMBERS"
    CREATE_INVITE = "CREATE_INVITE"
    VIEW_CHANNELS = "VIEW_CHANNELS"
    SEND_MESSAGES = "SEND_MESSAGES"
    READ_MESSAGE_HISTORY = "READ_MESSAGE_HISTORY"
    MANAGE_MESSAGES = "MANAGE_MESSAGES"


class Guild(Base):
    """A community container owning channels, roles and a member list."""

    __tablename__ = "guild"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    member_links: Mapped[list[GuildMember]] = relationship(
        "GuildMember",
        back_populates="guild",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    roles: Mapped[list[Role]] = relationship(
        "Role",
        back_populates="guild",
        cascade="all, delete-orphan",
        order_by="Role.position",
        lazy="selectin",
    )

    @property
    def member_ids(self) -> list[int]:
        """Return member ids in ascending order."""
        return sorted(link.user_id for link in self.member_links)

    def is_member(self, user_id: int) -> bool:
        """Return True if ``user_id`` belongs to the guild. The owner always does."""
        if user_id == self.owner_id:
            return True
        return any(link.user_id == user_id for link in self.member_links)

    @property
    def everyone_role(self) -> Role | None:
        """Return the default role every member holds."""
        for role in self.roles:
            if role.name == EVERYONE_ROLE_NAME:
                return role
        return None

    def get_role(self, role_id: int) -> Role | None:
        for role in self.roles:
            if role.id == role_id:
                return role
        return None


class GuildMember(Base):
    """Join table mapping users into guilds."""

    __tablename__ = "guild_member"

    guild_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("guild.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        primary_key=True,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    guild: Mapped[Guild] = relationship("Guild", back_populates="member_links")


class Role(Base):
    """Named bundle of permissions held by a subset of guild members."""

    __tablename__ = "guild_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("guild.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_ROLE_COLOR)
    # Permission names from the Permission vocabulary.
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # Explicit rank; not tied to list order in storage.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Roles created with the guild cannot be deleted.
    managed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    guild: Mapped[Guild] = relationship("Guild", back_populates="roles")
    member_links: Mapped[list[RoleMember]] = relationship(
        "RoleMember",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def member_ids(self) -> list[int]:
        """Return ids of the members holding this role, ascending."""
        return sorted(link.user_id for link in self.member_links)

    def has_member(self, user_id: int) -> bool:
        return any(link.user_id == user_id for link in self.member_links)

    @property
    def is_everyone(self) -> bool:
        return self.name == EVERYONE_ROLE_NAME

    @property
    def is_admin(self) -> bool:
        """True for the managed role that binds the owner to ADMINISTRATOR."""
        return self.managed and not self.is_everyone


class RoleMember(Base):
    """Join table mapping guild members into roles."""

    __tablename__ = "role_member"

    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("guild_role.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        primary_key=True,
    )

    role: Mapped[Role] = relationship("Role", back_populates="member_links")
