from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.constants import Settings, get_settings
from models.user_models import UserPrincipal
from utils.logger import logger


class JwtTokenProvider:
    """Issues and validates the application's access tokens.

    Tokens carry the external user id as ``sub`` together with the
    user's email and role names, and are bound to the configured issuer
    and audience.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def generate_token(self, principal: UserPrincipal) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": principal.external_id,
            "email": principal.email,
            "roles": sorted(principal.roles),
            "iat": now,
            "exp": now + timedelta(milliseconds=self.settings.jwt_expiration_ms),
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
        }
        token: str = jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
        return token

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and verify a token.

        Raises:
            ValueError: Signature, expiry, issuer or audience check failed
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                audience=self.settings.jwt_audience,
                issuer=self.settings.jwt_issuer,
            )
        except JWTError as exc:
            raise ValueError("Invalid token") from exc

        if not payload.get("sub"):
            raise ValueError("Invalid token")
        return payload

    def validate_token(self, token: str) -> bool:
        try:
            self.decode_token(token)
        except ValueError as e:
            logger.debug(f"Token validation failed: {e.__cause__ or e}")
            return False
        return True

    def get_user_id_from_token(self, token: str) -> str:
        """Return the token subject, or an empty string when the token is invalid."""
        try:
            return str(self.decode_token(token)["sub"])
        except ValueError:
            return ""
