# src/guildhall/schemas/conversation.py
"""Direct conversation Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ConversationCreate(BaseModel):
    """Schema for opening a conversation with another user."""

    recipient_id: int = Field(..., ge=1, description="User to converse with")


class ConversationResponse(BaseModel):
    """Schema for conversation information returned by the API."""

    id: int
    participant_ids: list[int]
    creator_id: int
    last_message_id: int | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
