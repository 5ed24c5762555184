from __future__ import annotations

from typing import Any, Literal

from api.services.metrics_service import MetricsService
from utils.logger import logger

HealthStatus = Literal["UP", "WARNING", "DOWN"]


class MessagePersistenceHealthIndicator:
    """Reports message persistence health from the total failure count."""

    def __init__(
        self,
        metrics_service: MetricsService,
        warning_threshold: int = 5,
        critical_threshold: int = 20,
    ):
        self.metrics_service = metrics_service
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold

    def health(self) -> dict[str, Any]:
        failures = self.metrics_service.get_persistence_failure_count()
        lost_messages = self.metrics_service.get_lost_messages_count()

        status: HealthStatus
        if failures >= self.critical_threshold:
            logger.error(
                f"Critical message persistence failure rate detected: "
                f"{failures} failures, {lost_messages} lost messages"
            )
            status, level = "DOWN", "CRITICAL"
        elif failures >= self.warning_threshold:
            logger.warning(
                f"Elevated message persistence failure rate detected: "
                f"{failures} failures, {lost_messages} lost messages"
            )
            status, level = "WARNING", "WARNING"
        else:
            status, level = "UP", "OK"

        return {
            "status": status,
            "details": {
                "failures": failures,
                "lostMessages": lost_messages,
                "recentFailures": self.metrics_service.get_recent_failures_count(),
                "lastReset": self.metrics_service.get_last_reset_time(),
                "status": level,
            },
        }
