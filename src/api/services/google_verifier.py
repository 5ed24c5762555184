"""
Google ID token verification.

Verifies tokens issued by Google Sign-In against the configured OAuth
client id and maps them onto application users.
"""

from __future__ import annotations

import asyncio

from typing import Any

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from api.services.user_service import UserService
from core.constants import GOOGLE_PROVIDER
from models.user_models import UserPrincipal
from utils.logger import logger


class GoogleTokenVerifier:
    """Verify Google ID tokens and resolve the corresponding user."""

    def __init__(self, user_service: UserService, client_id: str):
        self.user_service = user_service
        self.client_id = client_id
        self._transport = google_requests.Request()

    def _verify(self, token: str) -> dict[str, Any]:
        # Fetches Google's signing certificates over HTTP; run off the event loop
        claims: dict[str, Any] = id_token.verify_oauth2_token(token, self._transport, self.client_id)
        return claims

    async def verify_id_token(self, token: str | None) -> UserPrincipal | None:
        """Return the principal for a valid token, or None."""
        if not token or not token.strip():
            return None

        try:
            payload = await asyncio.to_thread(self._verify, token)
        except ValueError as e:
            logger.warning(f"Google ID token verification failed: {e}")
            return None
        except Exception as e:
            logger.error(f"Error verifying Google ID token: {e}", exc_info=True)
            return None

        email = payload.get("email")
        subject = payload.get("sub")
        if not email or not subject:
            logger.warning("Google ID token is missing required claims")
            return None

        name = payload.get("name") or email
        try:
            user = await self.user_service.find_or_create_user(
                external_id=subject,
                email=email,
                display_name=name,
                provider=GOOGLE_PROVIDER,
            )
        except Exception as e:
            logger.error(f"Failed to resolve user for Google account {email}: {e}", exc_info=True)
            return None

        principal = UserService.to_principal(user)
        principal.attributes.update({"name": name, "picture": payload.get("picture")})
        return principal
