# src/guildhall/schemas/message.py
"""Message Pydantic schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from guildhall.models.message import MAX_MESSAGE_LENGTH

from .user import UserPublic

MessageContent = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_MESSAGE_LENGTH),
]


class MessageCreate(BaseModel):
    """Schema for posting a message to a channel or conversation."""

    content: MessageContent
    attachments: list[str] = Field(
        default_factory=list,
        max_length=10,
        description="Opaque references to previously uploaded files",
    )


class MessageUpdate(BaseModel):
    """Schema for editing a message's content."""

    content: MessageContent


class MessageResponse(BaseModel):
    """Schema for message information returned by the API."""

    id: int
    content: str
    author: UserPublic
    channel_id: int | None
    conversation_id: int | None
    attachments: list[str]
    created_at: datetime
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)
