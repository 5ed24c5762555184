"""
Request/response schemas for the HTTP API.

JSON field names are camelCase; Python attributes are snake_case.
"""

from models.schemas.actuator import (
    AIInfoResponse,
    ApplicationInfo,
    ComponentHealth,
    HealthResponse,
    InfoResponse,
    ModelInfo,
    ProbeResponse,
)
from models.schemas.auth import GoogleTokenRequest, JwtResponse
from models.schemas.conversations import UpdateConversationRequest

__all__ = [
    "AIInfoResponse",
    "ApplicationInfo",
    "ComponentHealth",
    "GoogleTokenRequest",
    "HealthResponse",
    "InfoResponse",
    "JwtResponse",
    "ModelInfo",
    "ProbeResponse",
    "UpdateConversationRequest",
]
