"""
Request context middleware.

Every request gets a request id, a start time and (once authentication has
run) the caller's user id. The context is stored in a ContextVar so loggers
and error handlers can read it without it being passed around; SSE
responses keep it for the lifetime of the stream.
"""

from __future__ import annotations

import re
import secrets
import time

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)

REQUEST_ID_PREFIX = "req_"
REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"

# /api/conversations/{id} and anything below it
_CONVERSATION_PATH = re.compile(r"^/api/conversations/(?P<conversation_id>[^/]+)")


@dataclass
class RequestContext:
    """Request-scoped metadata for log correlation."""

    request_id: str
    start_time: float = field(default_factory=time.monotonic)
    path: str = ""
    method: str = ""
    client_ip: str | None = None
    user_id: str | None = None
    conversation_id: str | None = None
    status_code: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def to_log_context(self) -> dict[str, Any]:
        """Fields merged into every log record written during the request."""
        ctx: dict[str, Any] = {
            "request_id": self.request_id,
            "path": self.path,
            "method": self.method,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        optional = {
            "client_ip": self.client_ip,
            "user_id": self.user_id,
            "conversation_id": self.conversation_id,
            "status_code": self.status_code,
        }
        ctx.update({key: value for key, value in optional.items() if value is not None})
        return ctx


def generate_request_id(prefix: str = REQUEST_ID_PREFIX) -> str:
    """Prefix plus 16 hex characters, e.g. ``req_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{secrets.token_hex(8)}"


def get_request_context() -> RequestContext | None:
    """The current request context, or None outside of a request."""
    return _request_context.get()


def get_request_id() -> str | None:
    ctx = get_request_context()
    return ctx.request_id if ctx else None


@contextmanager
def request_scope(context: RequestContext) -> Iterator[RequestContext]:
    """Make ``context`` current until the block exits, restoring the previous one."""
    token = _request_context.set(context)
    try:
        yield context
    finally:
        _request_context.reset(token)


def update_request_context(**kwargs: Any) -> None:
    """Set known fields on the current context; anything else lands in ``extra``.

    Example:
        update_request_context(user_id=principal.user_id)
    """
    ctx = get_request_context()
    if ctx is None:
        return
    for key, value in kwargs.items():
        if key != "extra" and hasattr(ctx, key):
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value


def conversation_id_from_request(request: Request) -> str | None:
    """Conversation id from the path, falling back to the ``conversationId`` query parameter."""
    match = _CONVERSATION_PATH.match(request.url.path)
    if match:
        return match.group("conversation_id")
    return request.query_params.get("conversationId") or None


def client_ip_from_request(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Left-most entry is the original client
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Open a request context and echo its id and timing in the response headers."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or generate_request_id(),
            path=request.url.path,
            method=request.method,
            client_ip=client_ip_from_request(request),
            conversation_id=conversation_id_from_request(request),
        )
        with request_scope(context):
            response = await call_next(request)
            context.status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = context.request_id
            response.headers[RESPONSE_TIME_HEADER] = f"{context.elapsed_ms:.2f}ms"
            return response


__all__ = [
    "REQUEST_ID_HEADER",
    "REQUEST_ID_PREFIX",
    "RequestContext",
    "RequestContextMiddleware",
    "client_ip_from_request",
    "conversation_id_from_request",
    "generate_request_id",
    "get_request_context",
    "get_request_id",
    "request_scope",
    "update_request_context",
]
