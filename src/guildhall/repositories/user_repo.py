# src/guildhall/repositories/user_repo.py
"""Data access helpers for user accounts."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from guildhall.models.user import User

__all__ = ["UserRepository"]


class UserRepository:
    """Thin wrapper around database access for users."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> User | None:
        result = self.session.execute(select(User).where(User.email == email))
        return result.scalars().first()

    def get_by_username(self, username: str) -> User | None:
        result = self.session.execute(select(User).where(User.username == username))
        return result.scalars().first()

    def list(self, skip: int = 0, limit: int = 100) -> list[User]:
        """Return users ordered by username with offset pagination."""
        result = self.session.execute(
            select(User).order_by(User.username).offset(skip).limit(limit)
        )
        return list(result.scalars())

    def list_by_ids(self, user_ids: Iterable[int]) -> list[User]:
        ids = list(user_ids)
        if not ids:
            return []
        result = self.session.execute(
            select(User).where(User.id.in_(ids)).order_by(User.username)
        )
        return list(result.scalars())

    def add(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user
