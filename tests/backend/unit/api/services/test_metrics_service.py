"""Tests for message persistence metrics."""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from prometheus_client import REGISTRY

from api.services.metrics_service import MetricsService
from models.chat_models import MessageRole


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(clock: FakeClock) -> MetricsService:
    return MetricsService(reset_interval_seconds=900, clock=clock)


def test_initial_state(service: MetricsService, clock: FakeClock) -> None:
    assert service.get_persistence_failure_count() == 0
    assert service.get_lost_messages_count() == 0
    assert service.get_recent_failures_count() == 0
    assert service.get_last_reset_time() == int(clock.now * 1000)


def test_failure_increments_counts(service: MetricsService) -> None:
    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, RuntimeError("boom"))
    service.record_message_persistence_failure(uuid4(), MessageRole.USER, RuntimeError("boom"))

    assert service.get_persistence_failure_count() == 2
    assert service.get_lost_messages_count() == 2
    assert service.get_recent_failures_count() == 2


def test_recent_failures_reset_after_interval(service: MetricsService, clock: FakeClock) -> None:
    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, RuntimeError("boom"))
    clock.now += 901

    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, RuntimeError("boom"))

    assert service.get_recent_failures_count() == 1
    assert service.get_persistence_failure_count() == 2
    assert service.get_last_reset_time() == int(clock.now * 1000)


def test_recent_failures_kept_within_interval(service: MetricsService, clock: FakeClock) -> None:
    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, RuntimeError("boom"))
    clock.now += 900

    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, RuntimeError("boom"))

    assert service.get_recent_failures_count() == 2


def test_manual_reset(service: MetricsService, clock: FakeClock) -> None:
    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, RuntimeError("boom"))
    clock.now += 10

    service.reset_recent_failures()

    assert service.get_recent_failures_count() == 0
    assert service.get_persistence_failure_count() == 1
    assert service.get_last_reset_time() == int(clock.now * 1000)


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_prometheus_counters_updated(service: MetricsService) -> None:
    before = _sample("chatstream_message_persistence_failures_total")

    service.record_message_persistence_failure(uuid4(), MessageRole.ASSISTANT, ValueError("x" * 80))

    assert _sample("chatstream_message_persistence_failures_total") == before + 1
    assert (
        _sample(
            "chatstream_message_persistence_failure_details_total",
            role="ASSISTANT",
            error_type="ValueError",
            error_message="x" * 50,
        )
        >= 1
    )


def test_empty_error_message_labelled_unknown(service: MetricsService) -> None:
    service.record_message_persistence_failure(uuid4(), MessageRole.USER, KeyError())

    assert (
        _sample(
            "chatstream_message_persistence_failure_details_total",
            role="USER",
            error_type="KeyError",
            error_message="unknown",
        )
        >= 1
    )


@pytest.mark.parametrize(
    "getter",
    [
        "get_persistence_failure_count",
        "get_lost_messages_count",
        "get_recent_failures_count",
        "get_last_reset_time",
    ],
)
def test_getters_read_under_lock(service: MetricsService, getter: str) -> None:
    lock = MagicMock()
    service._lock = lock

    getattr(service, getter)()

    lock.__enter__.assert_called_once()
    lock.__exit__.assert_called_once()
