"""
Authentication endpoints.

Exchanges a Google ID token for an application access token.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import GoogleVerifier, JwtProvider
from api.middleware.exception_handlers import AuthenticationError
from models.error_models import ErrorCode
from models.schemas.auth import GoogleTokenRequest, JwtResponse
from utils.logger import logger

router = APIRouter()


@router.post(
    "/google",
    response_model=JwtResponse,
    summary="Sign in with Google",
    description="Verify a Google ID token and issue an access token. The first user to sign in becomes OWNER.",
    responses={
        400: {"description": "ID token is empty"},
        401: {"description": "ID token is invalid or expired"},
    },
)
async def authenticate_with_google(
    body: GoogleTokenRequest,
    verifier: GoogleVerifier,
    jwt_provider: JwtProvider,
) -> JwtResponse:
    if not body.id_token.strip():
        raise ValueError("ID token cannot be empty")

    principal = await verifier.verify_id_token(body.id_token)
    if principal is None:
        logger.warning("Failed to authenticate via Google token")
        raise AuthenticationError(
            message="Invalid or expired Google ID token",
            code=ErrorCode.AUTH_INVALID_TOKEN,
        )

    logger.info(f"User signed in via Google: {principal.user_id}", user_id=principal.user_id)
    return JwtResponse(access_token=jwt_provider.generate_token(principal))
