# src/guildhall/services/__init__.py
"""Business logic services for the Guildhall application."""

from .chat import ChatService
from .invites import InviteLedger

__all__ = [
    "ChatService",
    "InviteLedger",
]
