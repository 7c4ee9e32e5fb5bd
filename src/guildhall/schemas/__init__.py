# src/guildhall/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .channel import ChannelCreate, ChannelResponse, ChannelUpdate
from .conversation import ConversationCreate, ConversationResponse
from .guild import (
    GuildCreate,
    GuildResponse,
    GuildUpdate,
    MemberResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from .invite import InviteCreate, InviteJoin, InvitePreview, InviteResponse
from .message import MessageCreate, MessageResponse, MessageUpdate
from .user import (
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenResponse,
    UserPublic,
    UserResponse,
)

__all__ = [
    "ChannelCreate", "ChannelResponse", "ChannelUpdate",
    "ConversationCreate", "ConversationResponse",
    "GuildCreate", "GuildResponse", "GuildUpdate", "MemberResponse",
    "RoleCreate", "RoleResponse", "RoleUpdate",
    "InviteCreate", "InviteJoin", "InvitePreview", "InviteResponse",
    "MessageCreate", "MessageResponse", "MessageUpdate",
    "LoginRequest", "ProfileUpdateRequest", "RegisterRequest",
    "TokenResponse", "UserPublic", "UserResponse",
]
