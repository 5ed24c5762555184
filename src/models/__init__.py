"""
Models Module - Data Models and Type Definitions
=================================================

Pydantic v2 models shared by the services and the HTTP API.

Modules:
    chat_models: Conversations, messages and streamed response chunks
    user_models: Users, roles and the authenticated principal
    error_models: Error codes, HTTP status mapping and the error body
    schemas: Request/response bodies for the REST and actuator endpoints

Wire Format:
    Python attributes are snake_case; JSON is camelCase (``userId``,
    ``createdAt``, ``conversationId``). ``CamelModel`` accepts either form
    on input and services serialize with ``by_alias=True``.

Example:
    Streaming a chunk to the browser::

        from models.chat_models import ChatResponseChunk

        chunk = ChatResponseChunk(conversation_id=str(conversation.id), content=token)
        data = chunk.to_json()  # {"conversationId": "...", "content": "..."}
"""
