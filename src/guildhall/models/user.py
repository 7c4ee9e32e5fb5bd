# src/guildhall/models/user.py
"""SQLAlchemy models for user accounts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from guildhall.db.session import Base
from guildhall.db.time import utcnow


class PresenceStatus(str, Enum):
    """Presence states a user can advertise."""

    ONLINE = "online"
    IDLE = "idle"
    DND = "dnd"
    OFFLINE = "offline"


class User(Base):
    """Registered account. Accounts are never hard-deleted."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # Opaque to everything outside core.security.
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=PresenceStatus.OFFLINE.value,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
