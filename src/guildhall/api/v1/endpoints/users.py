# src/guildhall/api/v1/endpoints/users.py
"""User profile endpoints."""

from fastapi import APIRouter, Query

from guildhall.api.v1.dependencies import CurrentUserDep, SessionDep
from guildhall.core.errors import NotFoundError
from guildhall.models import User
from guildhall.schemas.user import ProfileUpdateRequest, UserPublic, UserResponse
from guildhall.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=list[UserPublic])
def list_users(
    _current_user: CurrentUserDep,
    db: SessionDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
) -> list[User]:
    """List users ordered by username."""
    return list(user_service.get_users(db, skip=skip, limit=limit))


@router.get("/me", response_model=UserResponse)
def read_me(current_user: CurrentUserDep) -> User:
    return current_user


@router.patch("/me", response_model=UserResponse)
def update_me(
    payload: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> User:
    """Update the authenticated user's profile."""
    return user_service.update_profile(db, current_user, payload)


@router.get("/{user_id}", response_model=UserPublic)
def read_user(user_id: int, _current_user: CurrentUserDep, db: SessionDep) -> User:
    user = user_service.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
