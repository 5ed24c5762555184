from __future__ import annotations

from typing import Annotated

import asyncpg

from fastapi import Depends, Request

from api.services.ai_transport import AITransport
from api.services.auth_service import JwtTokenProvider
from api.services.chat_service import ChatCoordinator
from api.services.conversation_service import ConversationService
from api.services.google_verifier import GoogleTokenVerifier
from api.services.persistence_health import MessagePersistenceHealthIndicator
from api.services.user_service import UserService
from core.constants import Settings, get_settings


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


async def get_db(request: Request) -> asyncpg.Pool:
    """Get database connection pool from application state."""
    return request.app.state.db_pool


def get_conversation_service(db: Annotated[asyncpg.Pool, Depends(get_db)]) -> ConversationService:
    """Provide conversation service backed by PostgreSQL."""
    return ConversationService(db)


def get_user_service(db: Annotated[asyncpg.Pool, Depends(get_db)]) -> UserService:
    return UserService(db)


def get_jwt_provider(settings: Annotated[Settings, Depends(get_app_settings)]) -> JwtTokenProvider:
    return JwtTokenProvider(settings)


def get_google_verifier(request: Request) -> GoogleTokenVerifier:
    """Get the Google ID token verifier from application state."""
    return request.app.state.google_verifier


def get_chat_coordinator(request: Request) -> ChatCoordinator:
    """Get the chat coordinator from application state."""
    return request.app.state.chat_coordinator


def get_ai_transport(request: Request) -> AITransport:
    return request.app.state.ai_transport


def get_persistence_health(request: Request) -> MessagePersistenceHealthIndicator:
    return request.app.state.persistence_health


# Type aliases for cleaner route signatures
DB = Annotated[asyncpg.Pool, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Conversations = Annotated[ConversationService, Depends(get_conversation_service)]
JwtProvider = Annotated[JwtTokenProvider, Depends(get_jwt_provider)]
GoogleVerifier = Annotated[GoogleTokenVerifier, Depends(get_google_verifier)]
Coordinator = Annotated[ChatCoordinator, Depends(get_chat_coordinator)]
Transport = Annotated[AITransport, Depends(get_ai_transport)]
PersistenceHealth = Annotated[MessagePersistenceHealthIndicator, Depends(get_persistence_health)]
