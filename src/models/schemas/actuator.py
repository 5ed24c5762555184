"""
Actuator API schemas.

Response models for health probes, AI model information and
application info.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from models.chat_models import CamelModel

ComponentStatus = Literal["UP", "WARNING", "DOWN"]


class ComponentHealth(CamelModel):
    status: ComponentStatus
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(CamelModel):
    """Aggregate health; DOWN if any component is DOWN."""

    status: ComponentStatus
    components: dict[str, ComponentHealth] = Field(default_factory=dict)


class ProbeResponse(CamelModel):
    status: Literal["UP", "DOWN"]


class ModelInfo(CamelModel):
    name: str
    base_url: str
    temperature: float


class ApplicationInfo(CamelModel):
    name: str
    profiles: list[str]


class AIInfoResponse(CamelModel):
    active_requests: int = Field(..., ge=0, description="AI streams currently in flight")
    model: ModelInfo
    application_info: ApplicationInfo


class InfoResponse(CamelModel):
    name: str
    version: str
    environment: str
