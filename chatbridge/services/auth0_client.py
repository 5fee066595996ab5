from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from chatbridge.config.settings import Settings
from chatbridge.errors import AuthError, UpstreamError

logger = logging.getLogger(__name__)

MOCK_TOKEN_PREFIX = "mock_"


class Auth0Client:
    """Auth0 userinfo lookups; ``mock_`` tokens get a canned profile outside production."""

    def __init__(self, settings: Settings, **client_options: Any) -> None:
        self.settings = settings
        self.client_options = client_options

    def get_user_info(self, access_token: str) -> dict[str, Any]:
        if not self.settings.is_production and access_token.startswith(MOCK_TOKEN_PREFIX):
            logger.warning("Using mock Auth0 user info")
            return self._mock_user_info()

        if not self.settings.auth0_domain:
            raise UpstreamError("Auth0 is not configured")

        try:
            with httpx.Client(timeout=10, **self.client_options) as client:
                resp = client.get(
                    f"https://{self.settings.auth0_domain}/userinfo",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.RequestError as exc:
            logger.error("Auth0 userinfo request failed: %s", exc)
            raise UpstreamError("Failed to reach Auth0") from exc

        if resp.status_code == 401:
            raise AuthError("Access token rejected by Auth0")
        if resp.status_code >= 400:
            logger.error("Auth0 userinfo error: %s %s", resp.status_code, resp.text[:200])
            raise UpstreamError("Failed to get user info", status=resp.status_code)
        return resp.json()

    @staticmethod
    def _mock_user_info() -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            "sub": f"auth0|{int(now.timestamp() * 1000)}",
            "given_name": "John",
            "family_name": "Doe",
            "nickname": "johndoe",
            "name": "John Doe",
            "picture": "https://cdn.auth0.com/avatars/jd.png",
            "updated_at": now.isoformat(),
            "email": "john.doe@example.com",
            "email_verified": True,
        }
