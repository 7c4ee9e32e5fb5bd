# src/guildhall/schemas/channel.py
"""Channel Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from guildhall.models.channel import ChannelKind

_NAME_PATTERN = r"^[a-z0-9-]+$"


def _normalize_name(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower().replace(" ", "-")


class ChannelCreate(BaseModel):
    """Schema for creating a channel. Names are lowercased and dash-joined."""

    name: str = Field(..., min_length=2, max_length=32, pattern=_NAME_PATTERN)
    topic: str = Field("", max_length=1024)
    category: str = Field("general", min_length=1, max_length=100)
    kind: ChannelKind = ChannelKind.TEXT

    @field_validator("name", mode="before")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return _normalize_name(value) if isinstance(value, str) else value


class ChannelUpdate(BaseModel):
    """Schema for updating a channel. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=2, max_length=32, pattern=_NAME_PATTERN)
    topic: str | None = Field(None, max_length=1024)
    category: str | None = Field(None, min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize(cls, value: str | None) -> str | None:
        return _normalize_name(value) if isinstance(value, str) else value


class ChannelResponse(BaseModel):
    """Schema for channel information returned by the API."""

    id: int
    guild_id: int
    name: str
    topic: str
    category: str
    kind: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
