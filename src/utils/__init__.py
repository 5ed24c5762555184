"""
Utils Module - Infrastructure Utilities and Support Functions
==============================================================

Modules:
    logger: JSON structured logging with rotation and request-context enrichment
    metrics: Prometheus collectors (``chatstream_`` namespace)
    db_utils: asyncpg pool factory, transactions, health check and shutdown
    client_factory: httpx/AsyncOpenAI clients for the model endpoint
    http_logger: Optional request/response logging for model calls
    sse: Token stream to Server-Sent Event mapping

Logging (logger.py):
    - Console handler: colored, human-readable, stderr
    - logs/app.jsonl: INFO and above
    - logs/errors.jsonl: ERROR and above
    Message contents only appear in logs when ENABLE_CONTENT_LOGGING is set,
    and then redacted.

Example:
    Logging with context::

        from utils.logger import logger

        logger.info("Conversation created", conversation_id=str(conversation.id))

See Also:
    :mod:`core.constants`: Logging and metric configuration values
"""
