"""
Authentication API schemas.

Request/response models for exchanging a Google ID token for an
application access token.
"""

from __future__ import annotations

from pydantic import ConfigDict, Field

from models.chat_models import CamelModel


class GoogleTokenRequest(CamelModel):
    """Google ID token obtained by the browser from Google Sign-In."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"idToken": "eyJhbGciOiJSUzI1NiIs..."}},
    )

    id_token: str = Field(..., description="Google ID token (JWT)")


class JwtResponse(CamelModel):
    """Application access token."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"accessToken": "eyJhbGciOiJIUzI1NiJ9...", "tokenType": "Bearer"}},
    )

    access_token: str = Field(..., description="Signed HS256 access token")
    token_type: str = Field(default="Bearer", description="Authorization scheme")
