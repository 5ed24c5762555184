"""
Conversation management endpoints.

Every operation is scoped to the authenticated user; conversations owned
by someone else answer 403.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status

from api.dependencies import Conversations
from api.middleware.auth import CurrentUser
from models.chat_models import Conversation, Message
from models.schemas.conversations import UpdateConversationRequest

router = APIRouter()

ConversationIdPath = Annotated[UUID, Path(..., description="Conversation identifier")]


@router.get(
    "",
    response_model=list[Conversation],
    summary="List conversations",
    description="Conversations of the current user, most recently updated first.",
)
async def list_conversations(user: CurrentUser, conversations: Conversations) -> list[Conversation]:
    return await conversations.list_conversations(user.user_id)


@router.get(
    "/{conversation_id}",
    response_model=Conversation,
    summary="Get conversation",
    responses={403: {"description": "Owned by another user"}, 404: {"description": "Not found"}},
)
async def get_conversation(
    conversation_id: ConversationIdPath,
    user: CurrentUser,
    conversations: Conversations,
) -> Conversation:
    return await conversations.get_conversation(conversation_id, user.user_id)


@router.get(
    "/{conversation_id}/messages",
    response_model=list[Message],
    summary="List messages",
    description="Messages of a conversation in chronological order.",
    responses={403: {"description": "Owned by another user"}, 404: {"description": "Not found"}},
)
async def get_messages(
    conversation_id: ConversationIdPath,
    user: CurrentUser,
    conversations: Conversations,
) -> list[Message]:
    return await conversations.get_messages(conversation_id, user.user_id)


@router.put(
    "/{conversation_id}",
    response_model=Conversation,
    summary="Rename conversation",
    responses={403: {"description": "Owned by another user"}, 404: {"description": "Not found"}},
)
async def update_conversation(
    conversation_id: ConversationIdPath,
    body: UpdateConversationRequest,
    user: CurrentUser,
    conversations: Conversations,
) -> Conversation:
    return await conversations.update_title(conversation_id, user.user_id, body.title)


@router.delete(
    "/{conversation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete conversation",
    description="Delete a conversation and all of its messages.",
    responses={403: {"description": "Owned by another user"}, 404: {"description": "Not found"}},
)
async def delete_conversation(
    conversation_id: ConversationIdPath,
    user: CurrentUser,
    conversations: Conversations,
) -> Response:
    await conversations.delete_conversation(conversation_id, user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
