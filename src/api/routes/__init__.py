"""
API Router - Aggregates the /api endpoints.

Usage in main.py:
    from api.routes import router as api_router
    app.include_router(api_router, prefix="/api")

Actuator endpoints are mounted separately under /actuator.
"""

from fastapi import APIRouter

from api.routes import auth, chat, conversations

router = APIRouter()

# Authentication endpoints (no auth required)
router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Streaming chat
router.include_router(
    chat.router,
    prefix="/chat",
    tags=["Chat"],
)

# Conversation management
router.include_router(
    conversations.router,
    prefix="/conversations",
    tags=["Conversations"],
)

__all__ = ["router"]
