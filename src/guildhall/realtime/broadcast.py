# src/guildhall/realtime/broadcast.py
"""Fire-and-forget event fanout to subscribed sessions."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from fastapi.encoders import jsonable_encoder

from guildhall.models.conversation import Conversation
from guildhall.models.message import Message

from .rooms import RoomRegistry, channel_room, conversation_room, user_room

logger = logging.getLogger(__name__)


def encode_frame(event: str, payload: Any) -> str:
    """Serialize an event into the ``{"event", "data"}`` wire frame."""
    return json.dumps({"event": event, "data": jsonable_encoder(payload)})


def message_rooms(message: Message, conversation: Conversation | None = None) -> set[str]:
    """Return the rooms a message event is delivered to.

    Channel messages go to the channel room only. Conversation messages go to
    the conversation room and to every participant's user room, so
    participants who never joined the conversation room still hear about it.
    """
    if message.channel_id is not None:
        return {channel_room(message.channel_id)}
    if message.conversation_id is None:
        return set()
    rooms = {conversation_room(message.conversation_id)}
    if conversation is not None:
        rooms.update(user_room(uid) for uid in conversation.participant_ids)
    return rooms


class BroadcastRouter:
    """Deliver events to every session subscribed to the target rooms.

    Delivery is best effort. A session that fails or is too slow to keep
    up is logged and skipped; the publisher never sees the failure.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry

    def publish(self, event: str, payload: Any, rooms: Iterable[str]) -> int:
        """Send ``event`` once to each distinct session in ``rooms``.

        Returns:
            The number of sessions the frame was handed to.
        """
        targets = self.registry.sessions_for(rooms)
        if not targets:
            return 0

        frame = encode_frame(event, payload)
        delivered = 0
        for session in targets:
            try:
                session.send(frame)
            except Exception:
                logger.warning(
                    "Dropping %s for session of user %s",
                    event,
                    getattr(session, "user_id", "?"),
                    exc_info=True,
                )
                continue
            delivered += 1
        logger.debug("Published %s to %d session(s)", event, delivered)
        return delivered
