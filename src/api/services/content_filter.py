"""
Token stream filtering.

Removes reasoning ("thinking") sections emitted by local models between
dedicated tag tokens, and optionally drops single blank tokens.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable


def is_meaningful_token(token: str) -> bool:
    """Single whitespace characters and empty tokens carry no content.

    Longer whitespace runs are kept, since they can be indentation.
    """
    return len(token) > 1 or token.strip() != ""


class ContentFilter:
    """Filters model output tokens according to the thinking configuration."""

    def __init__(
        self,
        thinking_enabled: bool = True,
        start_tag: str = "<think>",
        end_tag: str = "</think>",
    ):
        self.thinking_enabled = thinking_enabled
        self.start_tag = start_tag
        self.end_tag = end_tag

    def _visible(self, token: str, in_thinking: bool) -> tuple[bool, bool]:
        """Advance the thinking state for ``token``; return (new_state, emit)."""
        if not self.thinking_enabled:
            return False, True
        if token == self.start_tag:
            return True, False
        if token == self.end_tag:
            return False, False
        return in_thinking, not in_thinking

    async def filter_content(
        self,
        tokens: AsyncIterable[str],
        filter_blanks: bool = True,
    ) -> AsyncIterator[str]:
        in_thinking = False
        async for token in tokens:
            in_thinking, emit = self._visible(token, in_thinking)
            if emit and (not filter_blanks or is_meaningful_token(token)):
                yield token

    def filter_tokens(self, tokens: Iterable[str], filter_blanks: bool = True) -> list[str]:
        """Synchronous variant of :meth:`filter_content` for buffered tokens."""
        result: list[str] = []
        in_thinking = False
        for token in tokens:
            in_thinking, emit = self._visible(token, in_thinking)
            if emit and (not filter_blanks or is_meaningful_token(token)):
                result.append(token)
        return result
