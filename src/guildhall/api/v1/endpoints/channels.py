# src/guildhall/api/v1/endpoints/channels.py
"""Channel endpoints, including channel message history."""

from fastapi import APIRouter, Query, Response, status

from guildhall.api.v1.dependencies import ChatServiceDep, CurrentUserDep
from guildhall.models import Channel, Message
from guildhall.schemas.channel import ChannelResponse, ChannelUpdate
from guildhall.schemas.message import MessageCreate, MessageResponse

router = APIRouter(prefix="/channels", tags=["channels"])


@router.get("/{channel_id}", response_model=ChannelResponse)
def get_channel(channel_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Channel:
    return chat.get_channel(channel_id, current_user.id)


@router.put("/{channel_id}", response_model=ChannelResponse)
def update_channel(
    channel_id: int,
    payload: ChannelUpdate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Channel:
    return chat.update_channel(channel_id, current_user.id, payload)


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_channel(channel_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Response:
    """Delete a channel and its messages. A guild's last channel cannot be deleted."""
    chat.delete_channel(channel_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{channel_id}/messages", response_model=list[MessageResponse])
def list_messages(
    channel_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
    limit: int | None = Query(None, ge=1),
    before: int | None = Query(None, ge=1, description="Only return messages older than this id"),
) -> list[Message]:
    """Return a page of channel history, oldest first."""
    return chat.list_channel_messages(channel_id, current_user.id, limit=limit, before=before)


@router.post(
    "/{channel_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    channel_id: int,
    payload: MessageCreate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Message:
    return chat.post_channel_message(channel_id, current_user.id, payload)
