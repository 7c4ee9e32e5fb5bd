# src/guildhall/models/message.py
"""SQLAlchemy models for chat messages."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guildhall.db.session import Base
from guildhall.db.time import utcnow

from .user import User

MAX_MESSAGE_LENGTH = 2000


class Message(Base):
    """A message posted either to a channel or to a conversation, never both."""

    __tablename__ = "message"
    __table_args__ = (
        CheckConstraint(
            "(channel_id IS NULL) <> (conversation_id IS NULL)",
            name="ck_message_single_container",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=False,
    )
    channel_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("channel.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    conversation_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("conversation.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    # Opaque references produced by the upload collaborator.
    attachments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    # Null until the first edit.
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    author: Mapped[User] = relationship("User", lazy="joined")
