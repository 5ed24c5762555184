"""
Message save strategies.

A strategy decides how the tokens of a streamed reply become stored
messages. Strategies are registered by name and selected through the
``SAVE_STRATEGY`` setting.

Available strategies:
    end-of-stream: store the whole reply as one message after the stream ends
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from api.services.content_filter import ContentFilter
from api.services.conversation_service import ConversationService
from core.constants import SAVE_STRATEGY_END_OF_STREAM
from models.chat_models import MessageRole
from utils.logger import logger


class MessageSaveStrategy(ABC):
    """Persists the tokens of a reply for a conversation."""

    name: str

    @abstractmethod
    async def save(self, tokens: Sequence[str], conversation_id: UUID, role: MessageRole) -> None: ...


class EndOfStreamMessageSaveStrategy(MessageSaveStrategy):
    """Concatenates all tokens and saves a single message."""

    name = SAVE_STRATEGY_END_OF_STREAM

    def __init__(self, conversation_service: ConversationService, content_filter: ContentFilter):
        self.conversation_service = conversation_service
        self.content_filter = content_filter

    async def save(self, tokens: Sequence[str], conversation_id: UUID, role: MessageRole) -> None:
        logger.debug(f"Starting collection for conversation {conversation_id}")
        body = "".join(self.content_filter.filter_tokens(tokens))
        if not body.strip():
            logger.debug(f"No content after filtering: conversation={conversation_id}")
            return

        logger.debug(f"Saving message: conversation={conversation_id}, length={len(body)}")
        try:
            message = await self.conversation_service.add_message(conversation_id, role, body)
        except Exception as e:
            logger.error(f"Save failed: conversation={conversation_id}, error={e}")
            raise
        logger.debug(f"Message saved: id={message.id}, conversation={conversation_id}")


def select_save_strategy(strategies: Sequence[MessageSaveStrategy], name: str) -> MessageSaveStrategy:
    """Pick the strategy registered under ``name``.

    Falls back to the first registered strategy when the name is unknown.

    Raises:
        ValueError: No strategies are registered
    """
    if not strategies:
        raise ValueError("No message save strategies registered")

    logger.info(f"Registered message save strategies: {[s.name for s in strategies]}")
    for strategy in strategies:
        if strategy.name == name:
            logger.info(f"Using '{strategy.name}' as the message save strategy")
            return strategy

    fallback = strategies[0]
    logger.warning(f"Configured strategy '{name}' not found. Using default strategy '{fallback.name}' instead.")
    return fallback
