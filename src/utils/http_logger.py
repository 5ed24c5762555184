"""
HTTP request/response logging for the model endpoint.

Hooks into httpx so outgoing chat-completion calls can be inspected when
HTTP_REQUEST_LOGGING is enabled.
"""

from __future__ import annotations

import json

from typing import Any

import httpx

from utils.logger import logger

SENSITIVE_HEADERS = ("authorization", "api-key", "x-api-key")


class HTTPLogger:
    """Logs HTTP requests and responses for debugging."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._request_data: dict[int, dict[str, Any]] = {}

    async def log_request(self, request: httpx.Request) -> None:
        if not self.enabled:
            return

        try:
            body_str = request.content.decode("utf-8") if request.content else ""
            payload = json.loads(body_str) if body_str else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            payload = {"_error": f"Unreadable body: {e!s}"}

        self._request_data[id(request)] = {"method": request.method, "url": str(request.url)}
        logger.info(
            f"HTTP Request: {request.method} {request.url}",
            http_request=True,
            headers=sanitize_headers(dict(request.headers)),
            payload=payload,
        )

    async def log_response(self, response: httpx.Response) -> None:
        if not self.enabled:
            return

        request_data = self._request_data.pop(id(response.request), {})
        # Streaming bodies cannot be read here without consuming the stream
        logger.info(
            f"HTTP Response: {response.status_code} "
            f"{request_data.get('method', 'UNKNOWN')} {request_data.get('url', 'UNKNOWN')}",
            http_response=True,
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
        )


def sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    """Mask credential headers, keeping the last 4 characters."""
    sanitized = headers.copy()
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            sanitized[key] = f"***{value[-4:]}" if len(value) > 4 else "***"
    return sanitized


def create_logging_client(
    enabled: bool = True,
    timeout: httpx.Timeout | None = None,
) -> httpx.AsyncClient:
    """Create an httpx client whose event hooks log each request and response."""
    http_logger = HTTPLogger(enabled=enabled)
    event_hooks: dict[str, list[Any]] = {
        "request": [http_logger.log_request],
        "response": [http_logger.log_response],
    }
    return httpx.AsyncClient(event_hooks=event_hooks, timeout=timeout)
