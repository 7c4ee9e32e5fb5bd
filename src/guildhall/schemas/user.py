# src/guildhall/schemas/user.py
"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from guildhall.models.user import PresenceStatus


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(..., min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """Schema for login submissions."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    """Response returned after successful registration or login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")
    user: "UserResponse"


class ProfileUpdateRequest(BaseModel):
    """Schema for updating user profile information."""

    username: str | None = Field(None, min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=128)
    avatar: str | None = Field(None, max_length=2048, description="Opaque avatar reference")
    bio: str | None = Field(None, max_length=1000)
    status: PresenceStatus | None = None


class UserPublic(BaseModel):
    """User fields visible to other users."""

    id: int
    username: str
    avatar: str | None = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserPublic):
    """Full user information returned to the account owner."""

    email: str
    bio: str | None = None
    created_at: datetime


TokenResponse.model_rebuild()
