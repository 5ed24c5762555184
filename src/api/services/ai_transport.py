"""
AI transport: wraps a stream provider with filtering, error mapping and
in-flight request accounting.
"""

from __future__ import annotations

import time

from collections.abc import AsyncIterator
from uuid import UUID

from api.middleware.exception_handlers import AIResponseFailedError
from api.services.ai_stream_provider import AIStreamProvider
from api.services.content_filter import ContentFilter
from utils.logger import logger
from utils.metrics import ai_active_requests, ai_stream_duration_seconds, ai_stream_requests_total


class AITransport:
    """Produces filtered AI token streams and tracks how many are active."""

    def __init__(self, provider: AIStreamProvider, content_filter: ContentFilter):
        self.provider = provider
        self.content_filter = content_filter
        self._active_requests = 0

    @property
    def active_requests(self) -> int:
        return self._active_requests

    async def create_filtered_response_stream(
        self,
        user_query: str,
        conversation_id: UUID | None = None,
    ) -> AsyncIterator[str]:
        """Yield filtered tokens for ``user_query``.

        Raises:
            AIResponseFailedError: If the model cannot be reached or the stream breaks
        """
        self._active_requests += 1
        ai_active_requests.inc()
        start = time.perf_counter()
        status = "cancelled"
        try:
            raw_stream = self.provider.create_response_stream(user_query)
            async for token in self.content_filter.filter_content(raw_stream):
                yield token
            status = "success"
        except AIResponseFailedError as e:
            status = "error"
            logger.error(f"AI content filtering error: conversation={conversation_id}, error={e.message}")
            raise
        except Exception as e:
            status = "error"
            logger.error(f"AI response setup failed: conversation={conversation_id}, error={e}")
            raise AIResponseFailedError(f"Failed to connect to AI service: {str(e) or 'Unknown error'}", cause=e) from e
        finally:
            self._active_requests -= 1
            ai_active_requests.dec()
            ai_stream_requests_total.labels(status=status).inc()
            ai_stream_duration_seconds.observe(time.perf_counter() - start)
