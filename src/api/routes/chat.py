"""
Streaming chat endpoint.

Replies are delivered as Server-Sent Events: one ``message`` event per
token, or a single ``error`` event if the model fails.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from typing import Annotated, Any

from fastapi import APIRouter, Query
from sse_starlette.sse import EventSourceResponse

from api.dependencies import Coordinator
from api.middleware.auth import CurrentUser
from utils.logger import logger

router = APIRouter()


async def _log_stream_errors(
    events: AsyncGenerator[dict[str, Any], None],
    user_id: str,
) -> AsyncIterator[dict[str, Any]]:
    """Relay events; a failure after the error event has been sent is logged and ends the stream."""
    async with aclosing(events) as stream:
        try:
            async for event in stream:
                yield event
        except Exception as e:
            logger.error(f"Chat stream error: user={user_id}, error={e}", exc_info=True)


@router.get(
    "/stream",
    summary="Stream a chat reply",
    description="Send a message and receive the AI reply as a text/event-stream.",
    responses={
        200: {"description": "SSE stream of ChatResponseChunk events", "content": {"text/event-stream": {}}},
        400: {"description": "Message is empty or too long"},
    },
)
async def stream_chat(
    coordinator: Coordinator,
    user: CurrentUser,
    message: Annotated[str, Query(description="User message")],
    conversation_id: Annotated[
        str | None,
        Query(alias="conversationId", description="Conversation to continue; omitted starts a new one"),
    ] = None,
) -> EventSourceResponse:
    events = await coordinator.stream_chat(message, conversation_id, user.user_id)
    return EventSourceResponse(_log_stream_errors(events, user.user_id))
