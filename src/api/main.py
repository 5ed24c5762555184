from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.metrics import PrometheusMiddleware
from api.middleware.request_context import RequestContextMiddleware
from api.routes import actuator
from api.routes import router as api_router
from api.services.ai_stream_provider import OpenAICompatibleStreamProvider
from api.services.ai_transport import AITransport
from api.services.chat_service import ChatCoordinator
from api.services.content_filter import ContentFilter
from api.services.conversation_service import ConversationService
from api.services.google_verifier import GoogleTokenVerifier
from api.services.message_persister import MessagePersister
from api.services.metrics_service import MetricsService
from api.services.persistence_health import MessagePersistenceHealthIndicator
from api.services.save_strategies import EndOfStreamMessageSaveStrategy, select_save_strategy
from api.services.user_service import UserService
from core.constants import get_settings
from core.database import mask_database_url, resolve_database_url, run_migrations_async
from utils.client_factory import create_http_client, create_openai_client
from utils.db_utils import check_pool_health, create_database_pool, graceful_pool_close
from utils.logger import configure_uvicorn_logging, logger

# Settings are loaded via Pydantic Settings with environment-specific file support
# (.env, .env.{APP_ENV}, .env.local)
settings = get_settings()

if settings.debug:
    from core.constants import _get_env_files

    logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
    logger.info(
        f"Settings: app_env={settings.app_env}, db_pool=[{settings.db_pool_min_size},{settings.db_pool_max_size}]"
    )

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: migrations, pool, AI client and chat services."""
    database_url = resolve_database_url(settings)

    if settings.run_migrations_on_startup:
        await run_migrations_async(settings)

    app.state.db_pool = await create_database_pool(
        dsn=database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
        connection_timeout=settings.db_connection_timeout,
        max_inactive_connection_lifetime=settings.db_max_inactive_connection_lifetime,
    )

    health = await check_pool_health(app.state.db_pool)
    if not health["healthy"]:
        logger.error("Database health check failed during startup")
        raise RuntimeError("Database connection failed")
    logger.info(f"Database pool healthy ({mask_database_url(database_url)}): {health}")

    logger.info(f"Configuring AI client (endpoint: {settings.ai_base_url}, model: {settings.ai_model})")
    http_client = create_http_client(
        enable_logging=settings.http_request_logging,
        read_timeout=settings.http_read_timeout,
    )
    openai_client = create_openai_client(settings.ai_api_key, base_url=settings.ai_base_url, http_client=http_client)

    content_filter = ContentFilter(
        thinking_enabled=settings.thinking_enabled,
        start_tag=settings.thinking_start_tag,
        end_tag=settings.thinking_end_tag,
    )
    conversation_service = ConversationService(app.state.db_pool)
    metrics_service = MetricsService(reset_interval_seconds=settings.persistence_failure_reset_minutes * 60)

    strategy = select_save_strategy(
        [EndOfStreamMessageSaveStrategy(conversation_service, content_filter)],
        settings.save_strategy,
    )

    app.state.persistence_health = MessagePersistenceHealthIndicator(
        metrics_service,
        warning_threshold=settings.persistence_warning_threshold,
        critical_threshold=settings.persistence_critical_threshold,
    )
    app.state.ai_transport = AITransport(
        OpenAICompatibleStreamProvider(openai_client, settings.ai_model, settings.ai_temperature),
        content_filter,
    )
    app.state.chat_coordinator = ChatCoordinator(
        app.state.ai_transport,
        conversation_service,
        MessagePersister(strategy, metrics_service),
        max_message_length=settings.chat_max_message_length,
    )
    app.state.google_verifier = GoogleTokenVerifier(UserService(app.state.db_pool), settings.google_client_id)
    if not settings.google_client_id:
        logger.warning("GOOGLE_CLIENT_ID is not set; Google sign-in will reject every token")

    try:
        yield
    finally:
        logger.info("Initiating graceful shutdown sequence")
        await openai_client.close()
        await graceful_pool_close(app.state.db_pool)


app = FastAPI(
    title="Chat Stream API",
    description="""
## Chat Stream API

Streaming chat backend for a locally hosted language model.

### Features
- **Streaming Chat**: AI replies delivered token by token over Server-Sent Events
- **Conversations**: Per-user conversation history with rename and delete
- **Google Sign-In**: Google ID tokens exchanged for application access tokens
- **Actuator**: Health, AI model info and Prometheus metrics

### Authentication
All `/api` endpoints except `/api/auth/**` require a Bearer access token.
Use `/api/auth/google` to obtain one.
""",
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Authentication", "description": "Google sign-in"},
        {"name": "Chat", "description": "Streaming chat replies"},
        {"name": "Conversations", "description": "Conversation history management"},
        {"name": "Actuator", "description": "Health, info and metrics"},
    ],
)

# Register global exception handlers for consistent error responses
register_exception_handlers(app)

# Middleware is executed in reverse order of registration
app.add_middleware(PrometheusMiddleware)
app.add_middleware(RequestContextMiddleware)

# CORS runs first so preflight requests never reach authentication
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
    max_age=settings.cors_max_age,
)

app.include_router(api_router, prefix="/api")
app.include_router(actuator.router, prefix="/actuator", tags=["Actuator"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        reload_dirs=["src"],
        log_config=None,
    )
