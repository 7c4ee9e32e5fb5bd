# src/guildhall/schemas/guild.py
"""Guild and role Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from guildhall.models.guild import Permission

_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class GuildCreate(BaseModel):
    """Schema for creating a new guild."""

    name: str = Field(..., min_length=2, max_length=100)
    icon: str | None = Field(None, max_length=2048, description="Opaque icon reference")


class GuildUpdate(BaseModel):
    """Schema for updating guild settings."""

    name: str | None = Field(None, min_length=2, max_length=100)
    icon: str | None = Field(None, max_length=2048)


class RoleResponse(BaseModel):
    """Schema for role information returned by the API."""

    id: int
    guild_id: int
    name: str
    color: str
    permissions: list[str]
    position: int
    managed: bool
    member_ids: list[int]

    model_config = ConfigDict(from_attributes=True)


class GuildResponse(BaseModel):
    """Schema for guild information returned by the API."""

    id: int
    name: str
    icon: str | None
    owner_id: int
    member_ids: list[int]
    roles: list[RoleResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleCreate(BaseModel):
    """Schema for creating a role."""

    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#99AAB5", pattern=_COLOR_PATTERN)
    permissions: list[Permission] = Field(default_factory=list)
    position: int | None = Field(None, ge=1, description="Defaults to after the last role")


class RoleUpdate(BaseModel):
    """Schema for updating a role. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern=_COLOR_PATTERN)
    permissions: list[Permission] | None = None
    position: int | None = Field(None, ge=1)


class MemberResponse(BaseModel):
    """A guild member together with the roles they hold."""

    user_id: int
    username: str
    avatar: str | None = None
    status: str
    role_ids: list[int]
    is_owner: bool
