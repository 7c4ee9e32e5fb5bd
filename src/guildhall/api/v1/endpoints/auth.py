# src/guildhall/api/v1/endpoints/auth.py
"""Authentication endpoints for the Guildhall API."""

from fastapi import APIRouter, status

from guildhall.api.v1.dependencies import CurrentUserDep, SessionDep
from guildhall.core.security import create_access_token
from guildhall.models import User
from guildhall.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from guildhall.services import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: SessionDep) -> TokenResponse:
    """Create an account and return an access token for it."""
    user = user_service.register_user(db, payload)
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: SessionDep) -> TokenResponse:
    """Exchange email and password for an access token."""
    user = user_service.authenticate_user(db, payload.email, payload.password)
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
def read_me(current_user: CurrentUserDep) -> User:
    """Return the authenticated user's account."""
    return current_user
