"""
AI response stream providers.

The provider turns a user query into an async stream of raw text tokens.
The default implementation talks to any OpenAI-compatible endpoint,
which is how a local Ollama server is reached.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from openai import AsyncOpenAI

from utils.logger import logger


class AIStreamProvider(Protocol):
    """Source of raw model tokens for a single prompt."""

    def create_response_stream(self, user_query: str) -> AsyncIterator[str]: ...


class OpenAICompatibleStreamProvider:
    """Streams chat completions from an OpenAI-compatible server."""

    def __init__(self, client: AsyncOpenAI, model: str, temperature: float = 0.7):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def create_response_stream(self, user_query: str) -> AsyncIterator[str]:
        logger.debug(f"AI stream started for query: length={len(user_query)}")
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": user_query}],
            temperature=self.temperature,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content
        logger.debug("AI stream completed")
