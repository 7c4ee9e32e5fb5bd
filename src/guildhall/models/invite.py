# src/guildhall/models/invite.py
"""SQLAlchemy models for guild invites."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from guildhall.db.session import Base
from guildhall.db.time import ensure_aware, utcnow


class Invite(Base):
    """Redeemable code granting membership in one guild."""

    __tablename__ = "invite"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    guild_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("guild.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 0 means unlimited.
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Null means the invite never expires.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        return now > ensure_aware(self.expires_at)

    def is_exhausted(self) -> bool:
        if self.max_uses == 0:
            return False
        return self.uses >= self.max_uses
