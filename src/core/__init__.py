"""
Core Application Layer - Configuration and Database Environment
===============================================================

Modules:
    constants: Pydantic Settings (layered dotenv files), limits and event names
    database: APP_ENV to PostgreSQL DSN resolution and alembic migrations

Configuration (constants.py):
    - Model endpoint (Ollama OpenAI-compatible API), thinking-tag filtering
    - JWT signing and Google client id
    - CORS, connection pool sizing, persistence health thresholds

See Also:
    :mod:`api.main`: Application lifespan that consumes these settings
"""
