# src/guildhall/models/channel.py
"""SQLAlchemy models for guild channels."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from guildhall.db.session import Base
from guildhall.db.time import utcnow

DEFAULT_CHANNEL_NAME = "general"
DEFAULT_CHANNEL_CATEGORY = "Text Channels"


class ChannelKind(str, Enum):
    """Kinds of channel a guild can hold."""

    TEXT = "text"
    VOICE = "voice"


class Channel(Base):
    """A named channel inside exactly one guild."""

    __tablename__ = "channel"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("guild.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    topic: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    # Grouping label only; categories are not entities.
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="general")
    kind: Mapped[str] = mapped_column(String(8), nullable=False, default=ChannelKind.TEXT.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )
