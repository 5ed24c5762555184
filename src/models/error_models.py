"""
Standardized error response models.

Provides consistent error formatting across REST endpoints with request
tracking and error categorization. The browser client reads ``status``,
``error`` and ``message``; the remaining fields support log correlation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Authentication errors (1xxx)
    AUTH_REQUIRED = "AUTH_1001"
    AUTH_INVALID_TOKEN = "AUTH_1002"
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_1004"
    AUTH_USER_NOT_FOUND = "AUTH_1005"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"
    INVALID_ARGUMENT = "VAL_2002"

    # Resource errors (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"
    RESOURCE_CONFLICT = "RES_3003"

    # Conversation errors (4xxx)
    CONVERSATION_NOT_FOUND = "CONV_4001"
    CONVERSATION_ACCESS_DENIED = "CONV_4002"
    CONVERSATION_STATE_INVALID = "CONV_4003"
    CHAT_FAILED = "CONV_4004"

    # External service errors (7xxx)
    AI_RESPONSE_FAILED = "EXT_7001"
    EXTERNAL_TIMEOUT = "EXT_7002"
    EXTERNAL_RATE_LIMITED = "EXT_7003"

    # Database errors (8xxx)
    DATABASE_ERROR = "DB_8001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "INT_9001"
    INTERNAL_UNEXPECTED = "INT_9999"


class ErrorResponse(BaseModel):
    """Standardized error response model for REST endpoints.

    Example response:
    {
        "status": 404,
        "error": "error_404",
        "message": "Conversation not found: 7f1c...",
        "code": "CONV_4001",
        "request_id": "req_abc123",
        "timestamp": "2025-01-15T10:30:00Z",
        "path": "/api/conversations/7f1c..."
    }
    """

    status: int
    message: str
    code: ErrorCode
    errors: dict[str, str] | None = None
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    path: str | None = None
    # Debug info - only included in debug mode
    debug: dict[str, Any] | None = Field(default=None, exclude=True)

    @property
    def error(self) -> str:
        return f"error_{self.status}"

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        """Convert to dictionary for JSON response.

        Args:
            include_debug: Include debug information (only in debug mode)
        """
        data: dict[str, Any] = {"status": self.status, "error": self.error, "message": self.message}
        data.update(self.model_dump(mode="json", exclude_none=True, exclude={"status", "message"}))
        if include_debug and self.debug:
            data["debug"] = self.debug
        return data


# HTTP status code mappings for error codes
ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    # 400 Bad Request
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_ARGUMENT: 400,
    # 401 Unauthorized
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.AUTH_INVALID_TOKEN: 401,
    ErrorCode.AUTH_USER_NOT_FOUND: 401,
    # 403 Forbidden
    ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS: 403,
    ErrorCode.CONVERSATION_ACCESS_DENIED: 403,
    # 404 Not Found
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.CONVERSATION_NOT_FOUND: 404,
    # 409 Conflict
    ErrorCode.RESOURCE_CONFLICT: 409,
    # 429 Too Many Requests
    ErrorCode.EXTERNAL_RATE_LIMITED: 429,
    # 500 Internal Server Error
    ErrorCode.CHAT_FAILED: 500,
    ErrorCode.CONVERSATION_STATE_INVALID: 500,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INTERNAL_UNEXPECTED: 500,
    # 503 Service Unavailable
    ErrorCode.AI_RESPONSE_FAILED: 503,
    ErrorCode.EXTERNAL_TIMEOUT: 503,
}


def get_status_code(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_STATUS.get(error_code, 500)


__all__ = [
    "ERROR_CODE_TO_STATUS",
    "ErrorCode",
    "ErrorResponse",
    "get_status_code",
]
