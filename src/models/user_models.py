"""
User and authorization models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RoleEnum(str, Enum):
    """Roles a user may hold."""

    USER = "USER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class User(BaseModel):
    """An authenticated user, identified by provider and external id."""

    id: int
    external_id: str
    email: str
    display_name: str | None = None
    provider: str
    created_at: datetime
    updated_at: datetime


class UserRole(BaseModel):
    id: int | None = None
    user_id: int
    role: str


class UserWithRoles(BaseModel):
    user: User
    roles: set[str] = Field(default_factory=set)


class UserPrincipal(BaseModel):
    """The authenticated caller attached to a request.

    The external id (the provider's subject) is the user id used for
    conversation ownership.
    """

    external_id: str
    email: str
    roles: set[str] = Field(default_factory=set)
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.external_id

    @property
    def authorities(self) -> set[str]:
        return {f"ROLE_{role}" for role in self.roles}

    def has_role(self, role: RoleEnum | str) -> bool:
        value = role.value if isinstance(role, RoleEnum) else role
        return value in self.roles


__all__ = [
    "RoleEnum",
    "User",
    "UserPrincipal",
    "UserRole",
    "UserWithRoles",
]
