"""
Server-Sent Event helpers.

Events are plain dicts understood by ``sse_starlette.EventSourceResponse``
(``id``, ``event``, ``data``).
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from typing import Any
from uuid import UUID

from core.constants import SSE_ERROR_PREFIX, SSE_EVENT_ERROR, SSE_EVENT_MESSAGE
from models.chat_models import ChatResponseChunk
from utils.logger import logger


def create_message_event(conversation_id: UUID, index: int, content: str) -> dict[str, Any]:
    """Event for the ``index``-th (0-based) token; SSE ids start at 1."""
    return {
        "id": str(index + 1),
        "event": SSE_EVENT_MESSAGE,
        "data": ChatResponseChunk(conversation_id=str(conversation_id), content=content).to_json(),
    }


def create_error_event(conversation_id: UUID, error_message: str) -> dict[str, Any]:
    return {
        "id": "error",
        "event": SSE_EVENT_ERROR,
        "data": ChatResponseChunk(
            conversation_id=str(conversation_id),
            content=f"{SSE_ERROR_PREFIX}{error_message}",
        ).to_json(),
    }


async def map_to_server_events(
    contents: AsyncIterable[str],
    conversation_id: UUID,
) -> AsyncIterator[dict[str, Any]]:
    """Turn a token stream into message events, ending with an error event if it fails."""
    index = 0
    try:
        async for content in contents:
            yield create_message_event(conversation_id, index, content)
            index += 1
    except Exception as e:
        logger.error(f"SSE streaming error: conversation={conversation_id}, error={e}", exc_info=True)
        yield create_error_event(conversation_id, str(e) or "Unknown error")
