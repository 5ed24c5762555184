"""Tests for the message persister."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from api.services.message_persister import MessagePersister
from models.chat_models import MessageRole


@pytest.fixture
def strategy() -> MagicMock:
    mock = MagicMock()
    mock.save = AsyncMock()
    return mock


@pytest.fixture
def metrics_service() -> MagicMock:
    return MagicMock()


@pytest.mark.asyncio
async def test_delegates_to_strategy(strategy: MagicMock, metrics_service: MagicMock) -> None:
    persister = MessagePersister(strategy, metrics_service)
    conversation_id = uuid4()

    await persister.save_message(["a", "b"], conversation_id, MessageRole.ASSISTANT)

    strategy.save.assert_awaited_once_with(["a", "b"], conversation_id, MessageRole.ASSISTANT)
    metrics_service.record_message_persistence_failure.assert_not_called()


@pytest.mark.asyncio
async def test_failure_is_recorded_not_raised(strategy: MagicMock, metrics_service: MagicMock) -> None:
    error = RuntimeError("insert failed")
    strategy.save.side_effect = error
    persister = MessagePersister(strategy, metrics_service)
    conversation_id = uuid4()

    await persister.save_message(["a"], conversation_id, MessageRole.ASSISTANT)

    metrics_service.record_message_persistence_failure.assert_called_once_with(
        conversation_id, MessageRole.ASSISTANT, error
    )
