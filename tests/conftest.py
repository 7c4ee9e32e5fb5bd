# tests/conftest.py
from __future__ import annotations

import json
import os
from collections.abc import Callable, Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

from guildhall.core.security import create_access_token, hash_password
from guildhall.db.session import Base
from guildhall.db.session import get_db as app_get_session
from guildhall.main import create_app
from guildhall.models import Guild, User
from guildhall.realtime.broadcast import BroadcastRouter
from guildhall.realtime.rooms import RoomRegistry
from guildhall.repositories.store import Store
from guildhall.services.chat import ChatService
from guildhall.services.invites import InviteLedger

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


class RecordingSession:
    """Stand-in for a gateway session that keeps every frame it is sent."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        self.frames: list[str] = []

    def send(self, frame: str) -> None:
        self.frames.append(frame)

    def events(self) -> list[str]:
        return [json.loads(frame)["event"] for frame in self.frames]


@pytest.fixture()
def recorder() -> type[RecordingSession]:
    """Return the recording session class for subscribing fake sessions."""
    return RecordingSession


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def app() -> FastAPI:
    return create_app()


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def rooms() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture()
def broadcaster(rooms: RoomRegistry) -> BroadcastRouter:
    return BroadcastRouter(rooms)


@pytest.fixture()
def store(db_session: Session) -> Store:
    return Store(db_session)


@pytest.fixture()
def chat(store: Store, broadcaster: BroadcastRouter) -> ChatService:
    return ChatService(store, broadcaster)


@pytest.fixture()
def ledger(store: Store, broadcaster: BroadcastRouter) -> InviteLedger:
    return InviteLedger(store, broadcaster)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory that persists users with unique names."""

    def _make(username: str | None = None, password: str = "password123") -> User:
        n = next(_USER_COUNTER)
        name = username or f"user{n}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash=hash_password(password),
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def owner(make_user: Callable[..., User]) -> User:
    return make_user("owner")


@pytest.fixture()
def member(make_user: Callable[..., User]) -> User:
    return make_user("member")


@pytest.fixture()
def outsider(make_user: Callable[..., User]) -> User:
    return make_user("outsider")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def owner_headers(owner: User) -> dict[str, str]:
    return auth_headers(owner)


@pytest.fixture()
def member_headers(member: User) -> dict[str, str]:
    return auth_headers(member)


@pytest.fixture()
def outsider_headers(outsider: User) -> dict[str, str]:
    return auth_headers(outsider)


@pytest.fixture()
def guild(chat: ChatService, owner: User) -> Guild:
    """A guild owned by ``owner`` with its default roles and channel."""
    return chat.create_guild(owner.id, "Test Guild")


@pytest.fixture()
def guild_with_member(chat: ChatService, store: Store, guild: Guild, member: User) -> Guild:
    """``guild`` with ``member`` joined through the normal membership path."""
    with store.atomic():
        store.guilds.add_member(guild, member.id)
    return guild
