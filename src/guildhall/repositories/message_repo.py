# src/guildhall/repositories/message_repo.py
"""Data access helpers for messages."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from guildhall.models.message import Message

__all__ = ["MessageRepository"]


class MessageRepository:
    """Thin wrapper around database access for message entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, message_id: int) -> Message | None:
        return self.session.get(Message, message_id)

    def _page(self, stmt, limit: int, before: int | None) -> list[Message]:
        if before is not None:
            stmt = stmt.where(Message.id < before)
        result = self.session.execute(stmt.order_by(Message.id.desc()).limit(limit))
        # Fetched newest-first for the cursor; returned oldest-first.
        return list(reversed(list(result.scalars())))

    def list_for_channel(
        self, channel_id: int, *, limit: int, before: int | None = None
    ) -> list[Message]:
        """Return up to ``limit`` channel messages older than ``before``."""
        return self._page(
            select(Message).where(Message.channel_id == channel_id), limit, before
        )

    def list_for_conversation(
        self, conversation_id: int, *, limit: int, before: int | None = None
    ) -> list[Message]:
        """Return up to ``limit`` conversation messages older than ``before``."""
        return self._page(
            select(Message).where(Message.conversation_id == conversation_id), limit, before
        )

    def latest_in_conversation(
        self, conversation_id: int, *, excluding: int | None = None
    ) -> Message | None:
        stmt = select(Message).where(Message.conversation_id == conversation_id)
        if excluding is not None:
            stmt = stmt.where(Message.id != excluding)
        result = self.session.execute(stmt.order_by(Message.id.desc()).limit(1))
        return result.scalars().first()

    def add(self, message: Message) -> Message:
        self.session.add(message)
        self.session.flush()
        return message

    def delete(self, message: Message) -> None:
        self.session.delete(message)
        self.session.flush()
