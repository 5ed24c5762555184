"""
Message persistence metrics.

Keeps in-process counters for health reporting and mirrors them into the
Prometheus collectors in :mod:`utils.metrics`.
"""

from __future__ import annotations

import threading
import time

from collections.abc import Callable
from uuid import UUID

from core.constants import METRIC_ERROR_MESSAGE_LENGTH
from models.chat_models import MessageRole
from utils.logger import logger
from utils.metrics import (
    message_persistence_failure_details_total,
    message_persistence_failures_total,
    messages_lost,
    persistence_recent_failures,
)

DEFAULT_RESET_INTERVAL_SECONDS = 15 * 60


class MetricsService:
    """Records message persistence failures.

    ``recent_failures`` counts failures since the last reset; the count is
    reset lazily when a failure arrives after the interval has elapsed.
    """

    def __init__(
        self,
        reset_interval_seconds: float = DEFAULT_RESET_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.reset_interval_seconds = reset_interval_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._failures = 0
        self._lost_messages = 0
        self._recent_failures = 0
        self._last_reset = clock()

    def record_message_persistence_failure(
        self,
        conversation_id: UUID,
        role: MessageRole,
        error: BaseException,
    ) -> None:
        error_type = type(error).__name__
        with self._lock:
            self._failures += 1
            self._lost_messages += 1
            self._check_and_reset_recent_failures()
            self._recent_failures += 1
            recent = self._recent_failures

        message_persistence_failures_total.inc()
        messages_lost.inc()
        persistence_recent_failures.set(recent)
        message_persistence_failure_details_total.labels(
            role=role.value,
            error_type=error_type,
            error_message=(str(error) or "unknown")[:METRIC_ERROR_MESSAGE_LENGTH],
        ).inc()

        logger.warning(
            f"Data loss detected! Conversation: {conversation_id}, Role: {role.value}, Error: {error_type}",
            conversation_id=str(conversation_id),
        )

    def get_persistence_failure_count(self) -> int:
        with self._lock:
            return self._failures

    def get_lost_messages_count(self) -> int:
        with self._lock:
            return self._lost_messages

    def get_recent_failures_count(self) -> int:
        with self._lock:
            return self._recent_failures

    def get_last_reset_time(self) -> int:
        """Time of the last recent-failures reset in milliseconds since the epoch."""
        with self._lock:
            return int(self._last_reset * 1000)

    def reset_recent_failures(self) -> None:
        with self._lock:
            self._last_reset = self._clock()
            self._recent_failures = 0
        persistence_recent_failures.set(0)

    def _check_and_reset_recent_failures(self) -> None:
        now = self._clock()
        if now - self._last_reset > self.reset_interval_seconds:
            self._last_reset = now
            self._recent_failures = 0
