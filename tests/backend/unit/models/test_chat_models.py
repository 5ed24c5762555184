import json

from datetime import UTC, datetime
from uuid import UUID

import pytest

from pydantic import ValidationError

from models.chat_models import ChatResponseChunk, Conversation, Message, MessageRole
from models.schemas import GoogleTokenRequest, JwtResponse, UpdateConversationRequest

CONVERSATION_ID = UUID("0b8e9c1d-4f2a-4a6b-8c3d-5e7f9a1b2c3d")


def test_chunk_serializes_camel_case() -> None:
    chunk = ChatResponseChunk(conversation_id=str(CONVERSATION_ID), content="Hel")

    assert json.loads(chunk.to_json()) == {"conversationId": str(CONVERSATION_ID), "content": "Hel"}


def test_conversation_dump_uses_aliases() -> None:
    created = datetime(2025, 1, 15, 10, 30, tzinfo=UTC)
    conversation = Conversation(id=CONVERSATION_ID, user_id="sub-1", title="Hello", created_at=created)

    data = conversation.model_dump(mode="json", by_alias=True)

    assert data["userId"] == "sub-1"
    assert data["createdAt"] == "2025-01-15T10:30:00Z"
    assert data["updatedAt"] is None


def test_message_accepts_either_field_form() -> None:
    from_snake = Message(id=1, conversation_id=CONVERSATION_ID, role="USER", content="Hi")
    from_camel = Message.model_validate(
        {"id": 1, "conversationId": str(CONVERSATION_ID), "role": "ASSISTANT", "content": "Hello"}
    )

    assert from_snake.role is MessageRole.USER
    assert from_camel.conversation_id == CONVERSATION_ID
    assert from_camel.role is MessageRole.ASSISTANT


def test_message_rejects_unknown_role() -> None:
    with pytest.raises(ValidationError):
        Message(id=1, conversation_id=CONVERSATION_ID, role="SYSTEM", content="x")


def test_google_token_request_reads_camel_case() -> None:
    assert GoogleTokenRequest.model_validate({"idToken": "abc"}).id_token == "abc"


def test_google_token_request_requires_token() -> None:
    with pytest.raises(ValidationError):
        GoogleTokenRequest.model_validate({})


def test_jwt_response_defaults_to_bearer() -> None:
    assert JwtResponse(access_token="t").model_dump(by_alias=True) == {"accessToken": "t", "tokenType": "Bearer"}


def test_update_conversation_request() -> None:
    assert UpdateConversationRequest.model_validate({"title": "Renamed"}).title == "Renamed"
