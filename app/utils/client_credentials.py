"""OAuth2 client-credentials token helper shared by the Graph and bot clients."""

from __future__ import annotations

import time
from typing import Optional

import httpx

from app.config.logger import app_logger


TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"

# Refresh a little before the token actually expires
EXPIRY_MARGIN_SECONDS = 60


class ClientCredentialsToken:
    """Fetch and cache an app-only access token for one scope."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        tenant: str,
        client_id: str,
        client_secret: str,
        scope: str,
    ):
        self._http = http
        self._tenant = tenant
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._token: Optional[str] = None
        self._expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self._tenant and self._client_id and self._client_secret)

    async def get(self) -> str:
        """Return a valid access token.

        Raises:
            ValueError: If credentials are not configured.
            httpx.HTTPError: If the token endpoint call fails.
        """
        if not self.configured:
            raise ValueError("Client credentials are not configured")
        if self._token and time.monotonic() < self._expires_at:
            return self._token

        response = await self._http.post(
            TOKEN_URL_TEMPLATE.format(tenant=self._tenant),
            data={
                "grant_type": "client_credentials",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "scope": self._scope,
            },
        )
        response.raise_for_status()
        payload = response.json()

        self._token = payload["access_token"]
        expires_in = float(payload.get("expires_in", 3600))
        self._expires_at = time.monotonic() + max(expires_in - EXPIRY_MARGIN_SECONDS, 0)
        app_logger.debug(f"Fetched access token for scope {self._scope}")
        return self._token
