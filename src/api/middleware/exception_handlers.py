"""
Global exception handlers.

Provides centralized error handling with consistent response formatting,
proper logging, and request context integration.
"""

from __future__ import annotations

import traceback

from typing import Any

import asyncpg

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from openai import APIError as OpenAIAPIError
from pydantic import ValidationError

from api.middleware.request_context import get_request_context, get_request_id
from core.constants import get_settings
from models.error_models import ErrorCode, ErrorResponse, get_status_code
from utils.logger import logger


class AppException(Exception):
    """Base application exception with error code support.

    Use this for business logic errors that should return a specific
    error code and message to the client.

    Example:
        raise AppException(
            code=ErrorCode.CONVERSATION_NOT_FOUND,
            message=f"Conversation not found: {conversation_id}",
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return get_status_code(self.code)


class AuthenticationError(AppException):
    """Authentication-related errors."""

    def __init__(
        self,
        message: str = "User authentication required",
        code: ErrorCode = ErrorCode.AUTH_REQUIRED,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, details=details)


class ChatError(AppException):
    """Base class for chat-domain failures."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CHAT_FAILED,
        cause: Exception | None = None,
    ):
        super().__init__(code=code, message=message, cause=cause)


class ConversationNotFoundError(ChatError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}", code=ErrorCode.CONVERSATION_NOT_FOUND)
        self.conversation_id = conversation_id


class UnauthorizedConversationAccessError(ChatError):
    def __init__(self, conversation_id: str, user_id: str):
        super().__init__(
            f"User {user_id} is not authorized to access conversation {conversation_id}",
            code=ErrorCode.CONVERSATION_ACCESS_DENIED,
        )
        self.conversation_id = conversation_id
        self.user_id = user_id


class ConversationStateError(ChatError):
    """The conversation vanished or is otherwise unusable mid-operation."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message, code=ErrorCode.CONVERSATION_STATE_INVALID, cause=cause)


class AIResponseFailedError(ChatError):
    """The AI model failed to produce a response."""

    def __init__(self, message: str = "Failed to generate AI response", cause: Exception | None = None):
        super().__init__(message, code=ErrorCode.AI_RESPONSE_FAILED, cause=cause)


def _create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    request: Request | None = None,
    errors: dict[str, str] | None = None,
    debug_info: dict[str, Any] | None = None,
) -> ErrorResponse:
    """Create a standardized error response."""
    return ErrorResponse(
        status=status_code,
        code=code,
        message=message,
        errors=errors,
        request_id=get_request_id(),
        path=request.url.path if request else None,
        debug=debug_info,
    )


def _log_error(
    error: Exception,
    code: ErrorCode,
    status_code: int,
) -> None:
    """Log error with appropriate level and context."""
    ctx = get_request_context()
    log_context = ctx.to_log_context() if ctx else {}
    log_context["error_code"] = code.value
    log_context["status_code"] = status_code

    if status_code >= 500:
        logger.error(
            f"Server error: {code.value} - {error}",
            exc_info=True,
            **log_context,
        )
    elif status_code >= 400:
        logger.warning(
            f"Client error: {code.value} - {error}",
            **log_context,
        )


def _json(error_response: ErrorResponse, include_debug: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=error_response.status,
        content=error_response.to_dict(include_debug=include_debug),
    )


def _field_errors(errors: list[Any]) -> dict[str, str]:
    """Flatten pydantic error locations to {field: message}, keeping the last path segment."""
    result: dict[str, str] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = loc[-1] if loc else "request"
        result[field] = error.get("msg", "Invalid value")
    return result


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions."""
    status_code = exc.status_code

    settings = get_settings()
    debug_info = None
    if settings.debug:
        debug_info = {
            "exception_type": type(exc).__name__,
            "cause": str(exc.cause) if exc.cause else None,
        }

    _log_error(exc, exc.code, status_code)

    error_response = _create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=status_code,
        request=request,
        debug_info=debug_info,
    )
    return _json(error_response, include_debug=settings.debug)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with consistent formatting."""
    status_to_code = {
        400: ErrorCode.INVALID_ARGUMENT,
        401: ErrorCode.AUTH_REQUIRED,
        403: ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS,
        404: ErrorCode.RESOURCE_NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        429: ErrorCode.EXTERNAL_RATE_LIMITED,
        503: ErrorCode.EXTERNAL_TIMEOUT,
    }

    code = status_to_code.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    _log_error(exc, code, exc.status_code)

    error_response = _create_error_response(
        code=code,
        message=message,
        status_code=exc.status_code,
        request=request,
    )
    response = _json(error_response)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request parsing errors as 400 with per-field messages."""
    _log_error(exc, ErrorCode.VALIDATION_ERROR, 400)

    error_response = _create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Validation failed",
        status_code=400,
        request=request,
        errors=_field_errors(list(exc.errors())),
    )
    return _json(error_response)


async def pydantic_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic ValidationError raised from model construction."""
    _log_error(exc, ErrorCode.VALIDATION_ERROR, 400)

    error_response = _create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Validation failed",
        status_code=400,
        request=request,
        errors=_field_errors(list(exc.errors())),
    )
    return _json(error_response)


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Invalid arguments from the service layer map to 400."""
    _log_error(exc, ErrorCode.INVALID_ARGUMENT, 400)

    error_response = _create_error_response(
        code=ErrorCode.INVALID_ARGUMENT,
        message=str(exc) or "Invalid argument",
        status_code=400,
        request=request,
    )
    return _json(error_response)


async def openai_exception_handler(request: Request, exc: OpenAIAPIError) -> JSONResponse:
    """Model endpoint errors surface as 503."""
    settings = get_settings()
    debug_info = None
    if settings.debug:
        debug_info = {
            "openai_error_type": type(exc).__name__,
            "openai_error_code": getattr(exc, "code", None),
        }

    _log_error(exc, ErrorCode.AI_RESPONSE_FAILED, 503)

    error_response = _create_error_response(
        code=ErrorCode.AI_RESPONSE_FAILED,
        message="Failed to generate AI response",
        status_code=503,
        request=request,
        debug_info=debug_info,
    )
    return _json(error_response, include_debug=settings.debug)


async def asyncpg_exception_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    """Handle PostgreSQL database errors."""
    settings = get_settings()
    debug_info = None
    if settings.debug:
        debug_info = {
            "pg_error_code": getattr(exc, "sqlstate", None),
            "pg_error_class": type(exc).__name__,
        }

    _log_error(exc, ErrorCode.DATABASE_ERROR, 500)

    error_response = _create_error_response(
        code=ErrorCode.DATABASE_ERROR,
        message="An unexpected error occurred",
        status_code=500,
        request=request,
        debug_info=debug_info,
    )
    return _json(error_response, include_debug=settings.debug)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking internals."""
    settings = get_settings()

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
        request_id=get_request_id(),
        path=request.url.path,
    )

    debug_info = None
    if settings.debug:
        debug_info = {
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc(),
        }

    error_response = _create_error_response(
        code=ErrorCode.INTERNAL_UNEXPECTED,
        message="An unexpected error occurred",
        status_code=500,
        request=request,
        debug_info=debug_info,
    )
    return _json(error_response, include_debug=settings.debug)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Call this in main.py after creating the FastAPI app:
        register_exception_handlers(app)
    """
    # Starlette types handlers against Exception; narrower handlers are safe at runtime
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]

    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, pydantic_exception_handler)  # type: ignore[arg-type]

    app.add_exception_handler(ValueError, value_error_handler)  # type: ignore[arg-type]

    app.add_exception_handler(OpenAIAPIError, openai_exception_handler)  # type: ignore[arg-type]

    app.add_exception_handler(asyncpg.PostgresError, asyncpg_exception_handler)  # type: ignore[arg-type]

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "AIResponseFailedError",
    "AppException",
    "AuthenticationError",
    "ChatError",
    "ConversationNotFoundError",
    "ConversationStateError",
    "UnauthorizedConversationAccessError",
    "app_exception_handler",
    "asyncpg_exception_handler",
    "generic_exception_handler",
    "http_exception_handler",
    "openai_exception_handler",
    "pydantic_exception_handler",
    "register_exception_handlers",
    "validation_exception_handler",
    "value_error_handler",
]
