"""
Google OAuth token refresh.

The webhook processor only refreshes tokens of mailboxes that are already
connected; the consent flow lives in another service.
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

REQUEST_TIMEOUT = 10  # seconds
MAX_ATTEMPTS = 3
BACKOFF_FACTOR = 2  # 2, 4 seconds
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class GoogleOAuthError(Exception):
    """Token refresh failure; recoverable is False when retrying cannot help."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        response_data: dict | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.response_data = response_data or {}
        self.recoverable = recoverable


@dataclass(slots=True)
class TokenResponse:
    access_token: str
    refresh_token: str | None
    expires_in: int | None
    expires_at: datetime | None

    @classmethod
    def from_api(cls, data: dict, fallback_refresh_token: str) -> "TokenResponse":
        expires_in = int(data["expires_in"]) if data.get("expires_in") else None
        return cls(
            access_token=data["access_token"],
            # Google usually omits the refresh token on refresh
            refresh_token=data.get("refresh_token") or fallback_refresh_token,
            expires_in=expires_in,
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in) if expires_in else None,
        )


class GoogleOAuthService:
    def __init__(self):
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET

    async def _post_form(self, data: dict) -> httpx.Response:
        """POST to the token endpoint, backing off on 429/5xx and network errors."""
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            for attempt in range(1, MAX_ATTEMPTS + 1):
                last_attempt = attempt == MAX_ATTEMPTS
                try:
                    response = await client.post(GOOGLE_TOKEN_URL, data=data)
                except httpx.RequestError as e:
                    if last_attempt:
                        raise GoogleOAuthError(f"Network error during token refresh: {e}") from e
                    logger.warning("Token refresh network error", attempt=attempt, error=str(e))
                else:
                    if response.status_code not in RETRY_STATUS_CODES or last_attempt:
                        return response
                    logger.warning(
                        "Token refresh transient status",
                        attempt=attempt,
                        status_code=response.status_code,
                    )

                await asyncio.sleep(BACKOFF_FACTOR**attempt)

        raise GoogleOAuthError("Token refresh failed: retries exhausted")

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """
        Exchange a refresh token for a new access token.

        Raises:
            GoogleOAuthError: client not configured, grant revoked
                (invalid_grant, not recoverable) or Google unavailable
        """
        if not self.client_id or not self.client_secret:
            raise GoogleOAuthError("Google OAuth client not configured", recoverable=False)

        response = await self._post_form(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        )

        try:
            data = response.json()
        except ValueError:
            logger.error(
                "Token refresh returned non-JSON",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise GoogleOAuthError(
                f"Google OAuth service error (HTTP {response.status_code})"
            ) from None

        if not response.is_success:
            error_code = data.get("error", "unknown_error")
            logger.error(
                "Token refresh rejected",
                status_code=response.status_code,
                error_code=error_code,
                error_description=data.get("error_description"),
            )
            raise GoogleOAuthError(
                f"Token refresh failed ({error_code})",
                error_code=error_code,
                response_data=data,
                recoverable=error_code != "invalid_grant",
            )

        if not data.get("access_token"):
            raise GoogleOAuthError("Token response without access_token")

        token = TokenResponse.from_api(data, refresh_token)
        logger.info("Access token refreshed", expires_in=token.expires_in)
        return token


# Singleton instance for application use
google_oauth_service = GoogleOAuthService()
