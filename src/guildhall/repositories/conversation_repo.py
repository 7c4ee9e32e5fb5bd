# src/guildhall/repositories/conversation_repo.py
"""Data access helpers for direct conversations."""
from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from guildhall.models.conversation import Conversation

__all__ = ["ConversationRepository"]


class ConversationRepository:
    """Thin wrapper around database access for conversations."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, conversation_id: int) -> Conversation | None:
        return self.session.get(Conversation, conversation_id)

    def get_for_pair(self, first: int, second: int) -> Conversation | None:
        """Return the conversation between two users regardless of order."""
        low, high = Conversation.ordered_pair(first, second)
        result = self.session.execute(
            select(Conversation).where(
                Conversation.participant_low == low,
                Conversation.participant_high == high,
            )
        )
        return result.scalars().first()

    def list_for_user(self, user_id: int) -> list[Conversation]:
        """Return the user's conversations, most recently active first."""
        result = self.session.execute(
            select(Conversation)
            .where(
                or_(
                    Conversation.participant_low == user_id,
                    Conversation.participant_high == user_id,
                )
            )
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        )
        return list(result.scalars())

    def add(self, conversation: Conversation) -> Conversation:
        self.session.add(conversation)
        self.session.flush()
        return conversation
