# src/guildhall/api/v1/endpoints/messages.py
"""Endpoints addressing a single message by id."""

from fastapi import APIRouter, Response, status

from guildhall.api.v1.dependencies import ChatServiceDep, CurrentUserDep
from guildhall.models import Message
from guildhall.schemas.message import MessageResponse, MessageUpdate

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{message_id}", response_model=MessageResponse)
def get_message(message_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Message:
    return chat.get_message(message_id, current_user.id)


@router.put("/{message_id}", response_model=MessageResponse)
def edit_message(
    message_id: int,
    payload: MessageUpdate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Message:
    """Edit a message. Only the author may edit."""
    return chat.edit_message(message_id, current_user.id, payload)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(message_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Response:
    """Delete a message as its author or as a moderator of its channel."""
    chat.delete_message(message_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
