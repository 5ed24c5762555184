"""
Chat domain models: conversations, messages and streamed response chunks.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase while accepting either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageRole(str, Enum):
    """Author of a message in a conversation."""

    USER = "USER"
    ASSISTANT = "ASSISTANT"


class Conversation(CamelModel):
    """A conversation between a user and the AI, owned by one user."""

    id: UUID
    user_id: str
    title: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Message(CamelModel):
    """A single message within a conversation."""

    id: int
    conversation_id: UUID
    role: MessageRole
    content: str
    created_at: datetime | None = None


class ChatResponseChunk(CamelModel):
    """A chunk of a streamed chat response, sent to the client as SSE data.

    Serialized as {"conversationId": "...", "content": "..."}.
    """

    conversation_id: str
    content: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


__all__ = [
    "CamelModel",
    "ChatResponseChunk",
    "Conversation",
    "Message",
    "MessageRole",
]
