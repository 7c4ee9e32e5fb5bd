"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from guildhall.core.errors import UnauthenticatedError
from guildhall.core.security import decode_access_token
from guildhall.db.session import get_db
from guildhall.models import User
from guildhall.realtime.broadcast import BroadcastRouter
from guildhall.repositories.store import Store
from guildhall.services.chat import ChatService
from guildhall.services.invites import InviteLedger

# HTTP Bearer scheme for JWT authentication; missing headers become 401, not 403
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def authenticate_token(db: Session, token: str | None) -> User:
    """Resolve a bearer token to its user.

    Args:
        db: Database session
        token: Raw JWT, or None if the client sent none

    Returns:
        User object for the authenticated user

    Raises:
        UnauthenticatedError: If the token is missing or invalid, or the user is gone
    """
    if not token:
        raise UnauthenticatedError("Not authenticated")
    user_id = decode_access_token(token)
    user = db.get(User, user_id)
    if user is None:
        raise UnauthenticatedError("User not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token."""
    token = credentials.credentials if credentials is not None else None
    return authenticate_token(db, token)


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_store(db: SessionDep) -> Store:
    return Store(db)


def get_broadcaster(request: Request) -> BroadcastRouter:
    """Return the application's broadcast router."""
    return request.app.state.broadcaster


StoreDep = Annotated[Store, Depends(get_store)]
BroadcasterDep = Annotated[BroadcastRouter, Depends(get_broadcaster)]


def get_chat_service(store: StoreDep, broadcaster: BroadcasterDep) -> ChatService:
    return ChatService(store, broadcaster)


def get_invite_ledger(store: StoreDep, broadcaster: BroadcasterDep) -> InviteLedger:
    return InviteLedger(store, broadcaster)


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
InviteLedgerDep = Annotated[InviteLedger, Depends(get_invite_ledger)]
