"""Directory service: resolve a user's email from their directory identity."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx

from app.config.logger import app_logger
from app.utils.client_credentials import ClientCredentialsToken


GRAPH_SCOPE = "https://graph.microsoft.com/.default"


class GraphDirectoryService:
    """Microsoft Graph ``/users/{id}`` lookups with an app-only token."""

    def __init__(self, http: httpx.AsyncClient, token: ClientCredentialsToken, base_url: str):
        self._http = http
        self._token = token
        self._base_url = base_url.rstrip("/")

    async def resolve_email(self, identity: Optional[str]) -> Optional[str]:
        """Email for ``identity`` (mail, else userPrincipalName), lower-cased.

        Returns None on any failure; lookups never raise.
        """
        identity = (identity or "").strip()
        if not identity:
            return None
        if not self._token.configured:
            app_logger.debug("Graph credentials not configured, skipping email lookup")
            return None

        try:
            token = await self._token.get()
            response = await self._http.get(
                f"{self._base_url}/users/{quote(identity, safe='')}",
                params={"$select": "id,displayName,mail,userPrincipalName"},
                headers={"Authorization": f"Bearer {token}"},
            )
            if response.status_code != 200:
                app_logger.warning(
                    f"Graph /users lookup failed for {identity}: {response.status_code} {response.text[:500]}"
                )
                return None
            user = response.json()
        except (httpx.HTTPError, ValueError, KeyError) as e:
            app_logger.warning(f"Graph /users lookup failed for {identity}: {e}")
            return None

        for key in ("mail", "userPrincipalName"):
            value = user.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip().lower()
        return None
