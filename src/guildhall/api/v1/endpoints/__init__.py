# src/guildhall/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .channels import router as channels_router
from .conversations import router as conversations_router
from .gateway import router as gateway_router
from .guilds import router as guilds_router
from .invites import router as invites_router
from .messages import router as messages_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "channels_router",
    "conversations_router",
    "gateway_router",
    "guilds_router",
    "invites_router",
    "messages_router",
    "users_router",
]
