# src/guildhall/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    channels_router,
    conversations_router,
    gateway_router,
    guilds_router,
    invites_router,
    messages_router,
    users_router,
)

__all__ = [
    "auth_router",
    "users_router",
    "guilds_router",
    "channels_router",
    "messages_router",
    "conversations_router",
    "invites_router",
    "gateway_router",
]
