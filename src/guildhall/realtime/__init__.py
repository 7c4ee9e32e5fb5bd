# src/guildhall/realtime/__init__.py
"""In-process real-time fanout: room subscriptions and event broadcast."""

from .broadcast import BroadcastRouter
from .rooms import RoomRegistry
from .session import WebSocketSession

__all__ = ["BroadcastRouter", "RoomRegistry", "WebSocketSession"]
