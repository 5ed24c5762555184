"""Tests for message save strategies."""

from __future__ import annotations

from collections.abc import Sequence
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from api.services.content_filter import ContentFilter
from api.services.save_strategies import (
    EndOfStreamMessageSaveStrategy,
    MessageSaveStrategy,
    select_save_strategy,
)
from models.chat_models import MessageRole


class NamedStrategy(MessageSaveStrategy):
    def __init__(self, name: str):
        self.name = name

    async def save(self, tokens: Sequence[str], conversation_id: UUID, role: MessageRole) -> None:
        return None


@pytest.fixture
def conversation_service() -> MagicMock:
    service = MagicMock()
    service.add_message = AsyncMock(return_value=MagicMock(id=7))
    return service


@pytest.fixture
def strategy(conversation_service: MagicMock) -> EndOfStreamMessageSaveStrategy:
    return EndOfStreamMessageSaveStrategy(conversation_service, ContentFilter())


class TestEndOfStreamStrategy:
    def test_name(self, strategy: EndOfStreamMessageSaveStrategy) -> None:
        assert strategy.name == "end-of-stream"

    @pytest.mark.asyncio
    async def test_saves_joined_tokens(
        self, strategy: EndOfStreamMessageSaveStrategy, conversation_service: MagicMock
    ) -> None:
        conversation_id = uuid4()

        await strategy.save(["Hello", ",", "  ", "world"], conversation_id, MessageRole.ASSISTANT)

        conversation_service.add_message.assert_awaited_once_with(
            conversation_id, MessageRole.ASSISTANT, "Hello,  world"
        )

    @pytest.mark.asyncio
    async def test_filters_thinking_and_single_blanks(
        self, strategy: EndOfStreamMessageSaveStrategy, conversation_service: MagicMock
    ) -> None:
        conversation_id = uuid4()

        await strategy.save(["<think>", "x", "</think>", "A", " ", "B"], conversation_id, MessageRole.ASSISTANT)

        conversation_service.add_message.assert_awaited_once_with(conversation_id, MessageRole.ASSISTANT, "AB")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tokens", [[], [" ", "\n"], ["<think>", "only thoughts", "</think>"], ["   "]])
    async def test_blank_body_not_saved(
        self,
        strategy: EndOfStreamMessageSaveStrategy,
        conversation_service: MagicMock,
        tokens: list[str],
    ) -> None:
        await strategy.save(tokens, uuid4(), MessageRole.ASSISTANT)

        conversation_service.add_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_error_propagates(
        self, strategy: EndOfStreamMessageSaveStrategy, conversation_service: MagicMock
    ) -> None:
        conversation_service.add_message.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError, match="db down"):
            await strategy.save(["Hi"], uuid4(), MessageRole.ASSISTANT)


class TestSelectSaveStrategy:
    def test_selects_by_name(self) -> None:
        first, second = NamedStrategy("first"), NamedStrategy("second")

        assert select_save_strategy([first, second], "second") is second

    def test_unknown_name_falls_back_to_first(self) -> None:
        first, second = NamedStrategy("first"), NamedStrategy("second")

        assert select_save_strategy([first, second], "missing") is first

    def test_no_strategies_raises(self) -> None:
        with pytest.raises(ValueError, match="No message save strategies"):
            select_save_strategy([], "end-of-stream")
