"""
Chat gateway: outbound messages to a conversation.

``ChatGateway`` is the interface the orchestrator and the injection workflow
talk to. ``BotConnectorGateway`` implements it against the Bot Framework
connector REST API; the service URL of each conversation comes from the
conversation directory.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol, Union
from urllib.parse import quote

import httpx

from app.config.logger import app_logger
from app.utils.client_credentials import ClientCredentialsToken


BOT_FRAMEWORK_SCOPE = "https://api.botframework.com/.default"
ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"

MessageContent = Union[str, Dict[str, Any]]


class ChatGateway(Protocol):
    """Outbound side of the chat surface."""

    async def deliver(self, conversation_id: str, content: MessageContent) -> Optional[str]:
        """Send ``content`` (plain text or an adaptive card). Returns the message id."""
        ...

    async def update_message(self, conversation_id: str, message_id: str, content: MessageContent) -> bool:
        ...

    async def delete_message(self, conversation_id: str, message_id: str) -> bool:
        ...

    async def send_typing(self, conversation_id: str) -> None:
        ...


def build_activity(content: MessageContent) -> Dict[str, Any]:
    """Message activity body for text or an adaptive card."""
    if isinstance(content, str):
        return {"type": "message", "text": content}
    return {
        "type": "message",
        "attachments": [{"contentType": ADAPTIVE_CARD_CONTENT_TYPE, "content": content}],
    }


class BotConnectorGateway:
    """ChatGateway over the Bot Framework connector REST API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: ClientCredentialsToken,
        endpoint_lookup: Callable[[str], Optional[str]],
    ):
        """
        Args:
            http: Shared async HTTP client.
            token: App-only token for the bot connector scope.
            endpoint_lookup: Returns the service URL stored for a conversation id.
        """
        self._http = http
        self._token = token
        self._endpoint_lookup = endpoint_lookup

    def _activities_url(self, conversation_id: str, activity_id: Optional[str] = None) -> Optional[str]:
        service_url = self._endpoint_lookup(conversation_id)
        if not service_url:
            app_logger.warning(f"No channel endpoint known for conversation {conversation_id}")
            return None
        url = f"{service_url.rstrip('/')}/v3/conversations/{quote(conversation_id, safe='')}/activities"
        if activity_id:
            url = f"{url}/{quote(activity_id, safe='')}"
        return url

    async def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {await self._token.get()}"}

    async def deliver(self, conversation_id: str, content: MessageContent) -> Optional[str]:
        url = self._activities_url(conversation_id)
        if url is None:
            return None
        try:
            response = await self._http.post(url, json=build_activity(content), headers=await self._headers())
            response.raise_for_status()
        except (httpx.HTTPError, ValueError) as e:
            app_logger.warning(f"Sending to conversation {conversation_id} failed: {e}")
            return None
        try:
            return response.json().get("id")
        except ValueError:
            return None

    async def update_message(self, conversation_id: str, message_id: str, content: MessageContent) -> bool:
        url = self._activities_url(conversation_id, message_id)
        if url is None:
            return False
        activity = build_activity(content)
        activity["id"] = message_id
        try:
            response = await self._http.put(url, json=activity, headers=await self._headers())
            response.raise_for_status()
        except (httpx.HTTPError, ValueError) as e:
            app_logger.debug(f"Updating message {message_id} in {conversation_id} failed: {e}")
            return False
        return True

    async def delete_message(self, conversation_id: str, message_id: str) -> bool:
        url = self._activities_url(conversation_id, message_id)
        if url is None:
            return False
        try:
            response = await self._http.delete(url, headers=await self._headers())
            response.raise_for_status()
        except (httpx.HTTPError, ValueError) as e:
            app_logger.debug(f"Deleting message {message_id} in {conversation_id} failed: {e}")
            return False
        return True

    async def send_typing(self, conversation_id: str) -> None:
        url = self._activities_url(conversation_id)
        if url is None:
            return
        try:
            response = await self._http.post(url, json={"type": "typing"}, headers=await self._headers())
            response.raise_for_status()
        except (httpx.HTTPError, ValueError) as e:
            app_logger.debug(f"Typing signal to {conversation_id} failed: {e}")
