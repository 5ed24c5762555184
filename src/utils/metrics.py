"""
Prometheus metrics for the chat stream service.

Collectors are module-level singletons registered with the default
registry and exposed at /actuator/prometheus.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# namespace_subsystem_name_unit
NAMESPACE = "chatstream"


# ============================================================================
# HTTP Metrics
# ============================================================================

request_duration_seconds = Histogram(
    f"{NAMESPACE}_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path", "status"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)


# ============================================================================
# AI Streaming Metrics
# ============================================================================

ai_active_requests = Gauge(
    f"{NAMESPACE}_ai_active_requests",
    "Number of AI streaming requests currently in flight",
)

ai_stream_requests_total = Counter(
    f"{NAMESPACE}_ai_stream_requests_total",
    "Total number of AI streaming requests",
    ["status"],  # "success", "error", "cancelled"
)

ai_stream_duration_seconds = Histogram(
    f"{NAMESPACE}_ai_stream_duration_seconds",
    "Time from request to end of the AI token stream",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)


# ============================================================================
# Message Persistence Metrics
# ============================================================================

message_persistence_failures_total = Counter(
    f"{NAMESPACE}_message_persistence_failures_total",
    "Total number of failed attempts to persist a chat message",
)

messages_lost = Gauge(
    f"{NAMESPACE}_message_persistence_lost_messages",
    "Number of chat messages that could not be persisted since startup",
)

persistence_recent_failures = Gauge(
    f"{NAMESPACE}_message_persistence_recent_failures",
    "Persistence failures within the current reset interval",
)

message_persistence_failure_details_total = Counter(
    f"{NAMESPACE}_message_persistence_failure_details_total",
    "Persistence failures broken down by role and error",
    ["role", "error_type", "error_message"],
)

messages_saved_total = Counter(
    f"{NAMESPACE}_messages_saved_total",
    "Total number of chat messages persisted",
    ["role"],  # "USER", "ASSISTANT"
)


# ============================================================================
# Database Metrics
# ============================================================================

db_pool_connections = Gauge(
    f"{NAMESPACE}_db_pool_connections",
    "Number of database connections by state",
    ["state"],  # "free" or "used"
)
