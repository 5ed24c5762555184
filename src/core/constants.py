"""
Constants and configuration for the chat streaming backend.
Centralizes magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

import os
import threading

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

#: Alembic configuration file used for startup migrations
ALEMBIC_INI_PATH = PROJECT_ROOT / "alembic.ini"

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of application log backups to retain during rotation.
LOG_BACKUP_COUNT_APP = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters to show in log previews for user input/response.
LOG_PREVIEW_LENGTH = 50

# ============================================================================
# Chat Configuration
# ============================================================================

#: Conversation titles are derived from the first message, cut at this length.
CONVERSATION_TITLE_MAX_LENGTH = 30

#: Suffix appended to truncated conversation titles.
CONVERSATION_TITLE_ELLIPSIS = "..."

#: Default upper bound for a single user message.
DEFAULT_MAX_MESSAGE_LENGTH = 4000

#: Authentication provider name stored on users created through Google sign-in.
GOOGLE_PROVIDER = "google"

#: Save strategy names the application knows how to build.
SAVE_STRATEGY_END_OF_STREAM = "end-of-stream"
SUPPORTED_SAVE_STRATEGIES = frozenset({SAVE_STRATEGY_END_OF_STREAM})

# ============================================================================
# SSE Configuration
# ============================================================================

#: Event name for streamed content chunks.
SSE_EVENT_MESSAGE = "message"

#: Event name and id used for error events.
SSE_EVENT_ERROR = "error"

#: Prefix of every error event's content.
SSE_ERROR_PREFIX = "An error occurred during streaming: "

# ============================================================================
# Metrics Configuration
# ============================================================================

#: Error messages attached as metric labels are truncated to this length.
METRIC_ERROR_MESSAGE_LENGTH = 50

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================

#: Valid environment names for configuration loading
Environment = Literal["test", "dev", "staging", "prod"]

_ENVIRONMENTS = ("test", "dev", "staging", "prod")

_DEFAULT_JWT_SECRET = "change-me-change-me-change-me-change-me"


def _get_env_files() -> list[Path]:
    """Determine which .env files to load based on APP_ENV.

    Load order (later files override earlier - pydantic-settings last-wins):
    1. .env (base defaults) - lowest priority
    2. .env.{environment} (environment-specific overrides)
    3. .env.local (local developer overrides, gitignored) - highest priority
    """
    env_name = os.getenv("APP_ENV", "dev").lower()
    if env_name not in _ENVIRONMENTS:
        env_name = "dev"

    candidates = [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env_name}",
        PROJECT_ROOT / ".env.local",
    ]
    return [p for p in candidates if p.exists()]


def _reload_dotenv_into_environ() -> None:
    """Load the dotenv chain into os.environ so environment-specific values win.

    Must be called BEFORE Settings() instantiation.
    """
    from dotenv import load_dotenv

    for env_file in _get_env_files():
        load_dotenv(env_file, override=True)


class Settings(BaseSettings):
    """Environment settings with validation and environment-specific file support.

    Configuration priority (highest to lowest):
    1. Values passed to Settings() constructor
    2. Environment variables
    3. .env.local > .env.{APP_ENV} > .env (dotenv files, last wins)

    APP_ENV selects the profile: test, dev (default), staging or prod.
    """

    # Application identification
    app_name: str = Field(default="chat-stream", description="Application name reported by actuator")
    app_env: Environment = Field(default="dev", description="Active environment profile")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug logging and debug error payloads")

    # API server
    api_host: str = Field(default="0.0.0.0", description="HTTP bind host")
    api_port: int = Field(default=8080, description="HTTP bind port")

    # Database
    database_url: str | None = Field(
        default=None,
        description="Explicit PostgreSQL DSN; overrides the postgres_* fields when set",
    )
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_database: str = Field(default="spring_ai", description="PostgreSQL database name")
    postgres_user: str = Field(default="postgres", description="PostgreSQL user")
    postgres_password: str = Field(default="postgres", description="PostgreSQL password")
    postgres_schema: str = Field(default="public", description="PostgreSQL schema searched by the application")
    run_migrations_on_startup: bool = Field(default=True, description="Run alembic upgrade head at startup")

    # Connection pool configuration
    db_pool_min_size: int = Field(default=5, description="Minimum PostgreSQL connections")
    db_pool_max_size: int = Field(default=10, description="Maximum PostgreSQL connections")
    db_command_timeout: float = Field(default=60.0, description="Default query timeout (seconds)")
    db_connection_timeout: float = Field(default=10.0, description="Pool creation timeout (seconds)")
    db_max_inactive_connection_lifetime: float = Field(
        default=1800.0, description="Close connections idle longer than this (seconds)"
    )

    # AI model (Ollama through its OpenAI-compatible API)
    ai_base_url: str = Field(default="http://localhost:11434/v1", description="OpenAI-compatible model endpoint")
    ai_api_key: str = Field(default="ollama", description="API key sent to the model endpoint")
    ai_model: str = Field(default="qwen3:4b", description="Chat model name")
    ai_temperature: float = Field(default=0.7, description="Sampling temperature")
    http_read_timeout: float = Field(default=600.0, description="HTTP read timeout for streaming (seconds)")
    http_request_logging: bool = Field(default=False, description="Log outgoing model HTTP requests")

    # Thinking-mode filtering
    thinking_enabled: bool = Field(default=True, description="Strip thinking sections from model output")
    thinking_start_tag: str = Field(default="<think>", description="Token opening a thinking section")
    thinking_end_tag: str = Field(default="</think>", description="Token closing a thinking section")

    # Chat
    chat_max_message_length: int = Field(
        default=DEFAULT_MAX_MESSAGE_LENGTH, description="Maximum characters in a user message"
    )
    save_strategy: str = Field(default=SAVE_STRATEGY_END_OF_STREAM, description="Message save strategy name")

    # Security
    jwt_secret: str = Field(default=_DEFAULT_JWT_SECRET, description="HS256 signing secret (32+ characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expiration_ms: int = Field(default=86_400_000, description="Access token lifetime (milliseconds)")
    jwt_issuer: str = Field(default="chat-stream", description="JWT issuer claim")
    jwt_audience: str = Field(default="chat-stream-client", description="JWT audience claim")
    allow_token_query_parameter: bool = Field(
        default=False,
        description="Accept the access token from the 'token' query parameter (EventSource clients)",
    )
    google_client_id: str = Field(default="", description="Google OAuth client id used as ID token audience")

    # CORS
    cors_allow_origins: str = Field(default="http://localhost:3000", description="Comma-separated allowed origins")
    cors_allow_methods: str = Field(default="GET,POST,PUT,DELETE,OPTIONS", description="Comma-separated methods")
    cors_allow_headers: str = Field(default="*", description="Comma-separated allowed headers")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials on CORS requests")
    cors_max_age: int = Field(default=3600, description="Preflight cache lifetime (seconds)")

    # Persistence monitoring
    persistence_failure_reset_minutes: float = Field(
        default=15.0, description="Window after which the recent failure count resets (minutes)"
    )
    persistence_warning_threshold: int = Field(default=5, description="Failures before health reports WARNING")
    persistence_critical_threshold: int = Field(default=20, description="Failures before health reports DOWN")

    # Logging
    log_dir: str = Field(default="logs", description="Directory for JSON log files, relative to project root")
    enable_content_logging: bool = Field(default=False, description="Include redacted message previews in logs")

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment variables override dotenv files; init values override both."""
        dotenv_source = DotEnvSettingsSource(
            settings_cls,
            env_file=_get_env_files(),
            env_file_encoding="utf-8",
        )
        return (init_settings, env_settings, dotenv_source)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | None) -> str:
        """Validate and normalize APP_ENV value."""
        if v is None:
            return "dev"
        normalized = str(v).lower()
        if normalized not in _ENVIRONMENTS:
            raise ValueError(f"app_env must be one of {list(_ENVIRONMENTS)}, got '{v}'")
        return normalized

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """HS256 keys must carry at least 256 bits."""
        if len(v.encode()) < 32:
            raise ValueError("jwt_secret must be at least 32 bytes for HS256")
        return v

    @field_validator("save_strategy")
    @classmethod
    def validate_save_strategy(cls, v: str) -> str:
        """Validate the save strategy names a known implementation."""
        if not v.strip():
            raise ValueError("save_strategy must not be blank")
        if v not in SUPPORTED_SAVE_STRATEGIES:
            raise ValueError(f"save_strategy must be one of {sorted(SUPPORTED_SAVE_STRATEGIES)}, got '{v}'")
        return v

    @field_validator("chat_max_message_length")
    @classmethod
    def validate_max_message_length(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("chat_max_message_length must be positive")
        return v

    @field_validator("thinking_start_tag", "thinking_end_tag")
    @classmethod
    def validate_thinking_tags(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("thinking tags must not be blank")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> Settings:
        """Reject unsafe defaults in production and inconsistent thresholds."""
        if self.persistence_warning_threshold > self.persistence_critical_threshold:
            raise ValueError("persistence_warning_threshold must not exceed persistence_critical_threshold")

        if self.app_env == "prod" and self.jwt_secret == _DEFAULT_JWT_SECRET:
            raise ValueError(
                "Configuration Error: jwt_secret must be changed from default in production.\n"
                "Set JWT_SECRET to a secure random string in your .env.prod file."
            )
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        return _split_csv(self.cors_allow_origins)

    @property
    def cors_methods_list(self) -> list[str]:
        return _split_csv(self.cors_allow_methods)

    @property
    def cors_headers_list(self) -> list[str]:
        return _split_csv(self.cors_allow_headers)

    @property
    def active_profiles(self) -> list[str]:
        """Active profiles as reported by the actuator."""
        return [self.app_env]

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# ============================================================================
# Settings Management
# ============================================================================


class _SettingsManager:
    """Thread-safe settings singleton."""

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.Lock()

    def get(self) -> Settings:
        if self._instance is not None:
            return self._instance

        with self._lock:
            if self._instance is None:
                _reload_dotenv_into_environ()
                self._instance = Settings()
            return self._instance

    def reload(self) -> Settings:
        with self._lock:
            _reload_dotenv_into_environ()
            self._instance = Settings()
            return self._instance

    def clear(self) -> None:
        with self._lock:
            self._instance = None


_settings_manager = _SettingsManager()


def get_settings() -> Settings:
    """Get the validated, cached settings instance.

    Raises:
        ValueError: If required configuration is missing or invalid.
    """
    return _settings_manager.get()


def reload_settings() -> Settings:
    """Force reload settings from the environment and dotenv files."""
    return _settings_manager.reload()


def clear_settings_cache() -> None:
    """Clear cached settings instance.

    Primarily useful for testing to ensure fresh settings on each test.
    """
    _settings_manager.clear()
