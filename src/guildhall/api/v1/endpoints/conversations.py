# src/guildhall/api/v1/endpoints/conversations.py
"""Direct conversation endpoints."""

from fastapi import APIRouter, Query, Response, status

from guildhall.api.v1.dependencies import ChatServiceDep, CurrentUserDep
from guildhall.models import Conversation, Message
from guildhall.schemas.conversation import ConversationCreate, ConversationResponse
from guildhall.schemas.message import MessageCreate, MessageResponse

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("/", response_model=list[ConversationResponse])
def list_conversations(current_user: CurrentUserDep, chat: ChatServiceDep) -> list[Conversation]:
    """List the current user's conversations, most recent first."""
    return chat.list_conversations(current_user.id)


@router.post("/", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
def open_conversation(
    payload: ConversationCreate,
    response: Response,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Conversation:
    """Open a conversation, or return the existing one with 200."""
    conversation, created = chat.open_conversation(current_user.id, payload.recipient_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return conversation


@router.get("/{conversation_id}", response_model=ConversationResponse)
def get_conversation(
    conversation_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Conversation:
    return chat.get_conversation(conversation_id, current_user.id)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
def list_messages(
    conversation_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
    limit: int | None = Query(None, ge=1),
    before: int | None = Query(None, ge=1),
) -> list[Message]:
    return chat.list_conversation_messages(
        conversation_id, current_user.id, limit=limit, before=before
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    conversation_id: int,
    payload: MessageCreate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Message:
    return chat.post_conversation_message(conversation_id, current_user.id, payload)
