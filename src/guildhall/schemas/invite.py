# src/guildhall/schemas/invite.py
"""Invite Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class InviteCreate(BaseModel):
    """Schema for creating an invite.

    ``max_uses`` of 0 means unlimited. ``max_age_seconds`` of 0 means the
    invite never expires; when omitted the configured default applies.
    """

    max_uses: int = Field(0, ge=0, le=1000)
    max_age_seconds: int | None = Field(None, ge=0, le=60 * 60 * 24 * 30)


class InviteJoin(BaseModel):
    """Schema for redeeming an invite code."""

    code: str = Field(..., min_length=1, max_length=32)


class InviteResponse(BaseModel):
    """Schema for invite information returned by the API."""

    id: int
    code: str
    guild_id: int
    creator_id: int
    uses: int
    max_uses: int
    expires_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitePreview(BaseModel):
    """Public view of an invite shown before joining."""

    code: str
    guild_id: int
    guild_name: str
    guild_icon: str | None
    member_count: int
    expires_at: datetime | None
