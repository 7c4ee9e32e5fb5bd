# src/guildhall/repositories/store.py
"""Unit-of-work facade over the repositories."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from .channel_repo import ChannelRepository
from .conversation_repo import ConversationRepository
from .guild_repo import GuildRepository
from .invite_repo import InviteRepository
from .message_repo import MessageRepository
from .user_repo import UserRepository

__all__ = ["Store"]


class Store:
    """Groups the repositories that share one database session.

    Repositories only flush. :meth:`atomic` is the single place a transition
    is committed, and any exception inside it rolls the whole transition back.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session)
        self.guilds = GuildRepository(session)
        self.channels = ChannelRepository(session)
        self.messages = MessageRepository(session)
        self.conversations = ConversationRepository(session)
        self.invites = InviteRepository(session)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Commit everything done inside the block, or nothing."""
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
