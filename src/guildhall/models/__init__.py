# src/guildhall/models/__init__.py
"""SQLAlchemy models for the Guildhall application."""

from .channel import Channel, ChannelKind
from .conversation import Conversation
from .guild import Guild, GuildMember, Permission, Role, RoleMember
from .invite import Invite
from .message import Message
from .user import PresenceStatus, User

__all__ = [
    "Channel", "ChannelKind",
    "Conversation",
    "Guild", "GuildMember", "Permission", "Role", "RoleMember",
    "Invite",
    "Message",
    "PresenceStatus", "User",
]
