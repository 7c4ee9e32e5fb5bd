# src/guildhall/realtime/rooms.py
"""Process-local index of which sessions are subscribed to which rooms."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Protocol


class Subscriber(Protocol):
    """Anything the registry can track; sessions are compared by identity."""

    user_id: int

    def send(self, frame: str) -> None: ...


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def guild_room(guild_id: int) -> str:
    return f"guild:{guild_id}"


def channel_room(channel_id: int) -> str:
    return f"channel:{channel_id}"


def conversation_room(conversation_id: int) -> str:
    return f"conversation:{conversation_id}"


class RoomRegistry:
    """Bidirectional session/room index guarded by a single lock.

    Rooms exist only while at least one session is subscribed to them.
    No authorization happens here; content reaching a room has already been
    checked by the service that produced it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rooms: dict[str, set[Subscriber]] = {}
        self._sessions: dict[Subscriber, set[str]] = {}

    def connect(self, session: Subscriber) -> str:
        """Register a new session and subscribe it to its own user room."""
        room = user_room(session.user_id)
        with self._lock:
            self._sessions.setdefault(session, set())
            self._add(session, room)
        return room

    def subscribe(self, session: Subscriber, room: str) -> None:
        """Subscribe ``session`` to ``room``. Repeated calls are no-ops."""
        with self._lock:
            self._add(session, room)

    def unsubscribe(self, session: Subscriber, room: str) -> None:
        """Remove ``session`` from ``room``. Unknown pairs are ignored."""
        with self._lock:
            self._discard(session, room)

    def session_closed(self, session: Subscriber) -> None:
        """Forget ``session`` entirely, dropping rooms left empty."""
        with self._lock:
            for room in self._sessions.pop(session, set()):
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.discard(session)
                if not members:
                    del self._rooms[room]

    def sessions_for(self, rooms: Iterable[str]) -> set[Subscriber]:
        """Return the distinct sessions subscribed to any of ``rooms``."""
        found: set[Subscriber] = set()
        with self._lock:
            for room in rooms:
                found.update(self._rooms.get(room, ()))
        return found

    def rooms_for(self, session: Subscriber) -> set[str]:
        with self._lock:
            return set(self._sessions.get(session, ()))

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def _add(self, session: Subscriber, room: str) -> None:
        self._rooms.setdefault(room, set()).add(session)
        self._sessions.setdefault(session, set()).add(room)

    def _discard(self, session: Subscriber, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(session)
            if not members:
                del self._rooms[room]
        rooms = self._sessions.get(session)
        if rooms is not None:
            rooms.discard(room)
