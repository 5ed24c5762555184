"""
Conversation API schemas.

Conversations and messages are returned as the domain models from
:mod:`models.chat_models`; only request bodies live here.
"""

from __future__ import annotations

from pydantic import ConfigDict, Field

from models.chat_models import CamelModel


class UpdateConversationRequest(CamelModel):
    """Rename a conversation."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Trip planning"}},
    )

    title: str = Field(..., description="New conversation title")
