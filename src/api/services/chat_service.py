"""
Chat orchestration.

Ties together conversation bookkeeping, the AI transport, SSE event
mapping and reply persistence for a single chat turn.
"""

from __future__ import annotations

import asyncio
import time

from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator
from typing import Any
from uuid import UUID

from api.middleware.exception_handlers import AIResponseFailedError, ChatError, ConversationStateError
from api.services.ai_transport import AITransport
from api.services.conversation_service import ConversationService
from api.services.message_persister import MessagePersister
from core.constants import CONVERSATION_TITLE_ELLIPSIS, CONVERSATION_TITLE_MAX_LENGTH, DEFAULT_MAX_MESSAGE_LENGTH
from models.chat_models import MessageRole
from utils.logger import logger
from utils.sse import create_error_event, map_to_server_events


def build_title(message: str) -> str:
    """Conversation title derived from the opening message."""
    if len(message) > CONVERSATION_TITLE_MAX_LENGTH:
        return message[:CONVERSATION_TITLE_MAX_LENGTH] + CONVERSATION_TITLE_ELLIPSIS
    return message


def parse_conversation_id(value: str | None) -> UUID | None:
    """Parse a client-supplied conversation id; malformed ids start a new conversation."""
    if value is None or not value.strip():
        return None
    try:
        return UUID(value)
    except ValueError:
        logger.warning(f"Invalid UUID format: {value}")
        return None


async def _buffered(tokens: AsyncIterable[str], buffer: list[str]) -> AsyncIterator[str]:
    async for token in tokens:
        buffer.append(token)
        yield token


class ChatCoordinator:
    """Runs a chat turn and streams the reply as SSE events."""

    def __init__(
        self,
        ai_transport: AITransport,
        conversation_service: ConversationService,
        message_persister: MessagePersister,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ):
        self.ai_transport = ai_transport
        self.conversation_service = conversation_service
        self.message_persister = message_persister
        self.max_message_length = max_message_length
        # Saves outlive a cancelled stream; hold them until they finish
        self._pending_saves: set[asyncio.Task[None]] = set()

    def validate_message(self, message: str) -> None:
        if not message or not message.strip():
            raise ValueError("Message cannot be empty")
        if len(message) > self.max_message_length:
            raise ValueError(
                f"Message length exceeds maximum allowed length of {self.max_message_length} characters"
            )

    async def stream_chat(
        self,
        message: str,
        conversation_id: str | None,
        user_id: str,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Prepare the conversation and return the reply event stream.

        Validation and conversation setup happen before this returns, so
        request errors surface as regular HTTP errors rather than mid-stream.

        Raises:
            ValueError: The message is blank or too long
            ChatError: The conversation could not be prepared
        """
        self.validate_message(message)
        requested_id = parse_conversation_id(conversation_id)
        resolved_id = await self._prepare_conversation(requested_id, user_id, build_title(message), message)
        return self._stream_ai_response(resolved_id, message)

    async def _prepare_conversation(
        self,
        conversation_id: UUID | None,
        user_id: str,
        title: str,
        message: str,
    ) -> UUID:
        """Find or create the conversation and store the user's message."""
        try:
            conversation = await self.conversation_service.find_or_create_conversation(
                conversation_id, user_id, title
            )
            await self.conversation_service.add_message(conversation.id, MessageRole.USER, message)
        except (ValueError, ConversationStateError):
            raise
        except Exception as e:
            logger.error(f"Chat stream error: {e}")
            raise ChatError(f"Conversation preparation failed: {e}", cause=e) from e
        return conversation.id

    async def _stream_ai_response(self, conversation_id: UUID, message: str) -> AsyncGenerator[dict[str, Any], None]:
        buffer: list[str] = []
        start = time.perf_counter()
        try:
            tokens = self.ai_transport.create_filtered_response_stream(message, conversation_id)
            async for event in map_to_server_events(_buffered(tokens, buffer), conversation_id):
                yield event
        except AIResponseFailedError as e:
            logger.error(f"AI response failed: {e.message}")
            yield create_error_event(conversation_id, e.message)
        except Exception as e:
            logger.error(f"AI response processing failed: {e}")
            yield create_error_event(conversation_id, f"Failed to process AI response: {str(e) or 'Unknown error'}")
            raise
        finally:
            # Runs on normal completion, failure and client disconnect alike
            logger.log_chat_exchange(
                str(conversation_id),
                message,
                "".join(buffer),
                duration_ms=(time.perf_counter() - start) * 1000,
                token_count=len(buffer),
            )
            save = asyncio.create_task(
                self.message_persister.save_message(list(buffer), conversation_id, MessageRole.ASSISTANT)
            )
            self._pending_saves.add(save)
            save.add_done_callback(self._pending_saves.discard)
            # A disconnect may cancel this await again; the save itself keeps running
            await asyncio.shield(save)
