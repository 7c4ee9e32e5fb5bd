# src/guildhall/models/conversation.py
"""SQLAlchemy models for direct conversations between two users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from guildhall.db.session import Base
from guildhall.db.time import utcnow


class Conversation(Base):
    """Direct conversation between exactly two distinct users.

    Participants are stored as an ordered pair so that the unique constraint
    covers the unordered pair: there is at most one conversation per two users.
    """

    __tablename__ = "conversation"
    __table_args__ = (
        UniqueConstraint("participant_low", "participant_high", name="uq_conversation_pair"),
        CheckConstraint("participant_low < participant_high", name="ck_conversation_pair_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant_low: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
        index=True,
    )
    participant_high: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
        index=True,
    )
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    # Plain pointer; message.conversation_id already references this table.
    last_message_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @staticmethod
    def ordered_pair(first: int, second: int) -> tuple[int, int]:
        return (first, second) if first < second else (second, first)

    @property
    def participant_ids(self) -> list[int]:
        return [self.participant_low, self.participant_high]

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant_low, self.participant_high)
