from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import get_app_settings, get_jwt_provider, get_user_service
from api.middleware.exception_handlers import AuthenticationError
from api.middleware.request_context import update_request_context
from api.services.auth_service import JwtTokenProvider
from api.services.user_service import UserService
from core.constants import GOOGLE_PROVIDER, Settings
from models.error_models import ErrorCode
from models.user_models import UserPrincipal
from utils.logger import logger

bearer_scheme = HTTPBearer(auto_error=False)

# Browser EventSource cannot set headers, so SSE clients may pass ?token=
TOKEN_QUERY_PARAMETER = "token"


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> str | None:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    if settings.allow_token_query_parameter:
        return request.query_params.get(TOKEN_QUERY_PARAMETER) or None
    return None


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    jwt_provider: Annotated[JwtTokenProvider, Depends(get_jwt_provider)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserPrincipal:
    """Authenticate incoming requests with an application access token."""
    token = _extract_token(request, credentials, settings)
    if token is None:
        raise AuthenticationError(message="Unauthorized", code=ErrorCode.AUTH_REQUIRED)

    try:
        payload = jwt_provider.decode_token(token)
    except ValueError as exc:
        logger.debug(f"Rejected access token: {exc.__cause__ or exc}")
        raise AuthenticationError(
            message="Authentication failed",
            code=ErrorCode.AUTH_INVALID_TOKEN,
        ) from exc

    principal = await user_service.get_user_by_external_id(str(payload["sub"]), GOOGLE_PROVIDER)
    if principal is None:
        raise AuthenticationError(
            message="User not found",
            code=ErrorCode.AUTH_USER_NOT_FOUND,
        )

    update_request_context(user_id=principal.user_id)
    return principal


CurrentUser = Annotated[UserPrincipal, Depends(get_current_user)]
