from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from api.services.metrics_service import MetricsService
from api.services.save_strategies import MessageSaveStrategy
from models.chat_models import MessageRole
from utils.logger import logger


class MessagePersister:
    """Saves reply tokens through the configured strategy.

    Failures are counted and logged but never raised, so a storage
    problem cannot break a reply that has already reached the client.
    """

    def __init__(self, strategy: MessageSaveStrategy, metrics_service: MetricsService):
        self.strategy = strategy
        self.metrics_service = metrics_service

    async def save_message(self, tokens: Sequence[str], conversation_id: UUID, role: MessageRole) -> None:
        try:
            await self.strategy.save(tokens, conversation_id, role)
        except Exception as e:
            self.metrics_service.record_message_persistence_failure(conversation_id, role, e)
            logger.error(
                f"Message persistence failed: conversation={conversation_id}, role={role.value}, error={e}",
                exc_info=True,
            )
