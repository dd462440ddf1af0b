"""Explicit construction of the assistant's stores, collaborators and orchestrator.

``build_services`` is called once by the application lifespan; routes reach
the result through the ``get_services`` dependency. Tests override that
dependency with services built on a temporary data directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from app.config.logger import app_logger
from app.config.settings import Settings
from app.db.json_store import JsonCollection
from app.services.chat_gateway import BOT_FRAMEWORK_SCOPE, BotConnectorGateway, ChatGateway
from app.services.conversation_directory import ConversationDirectory, empty_directory
from app.services.directory_service import GRAPH_SCOPE, GraphDirectoryService
from app.services.document_store import DocumentStore, empty_document_collection
from app.services.llm_service import LLMTextService, create_llm_service
from app.services.notification_queue import NotificationQueue, empty_notifications
from app.services.orchestrator import ConversationOrchestrator
from app.services.session_flags import SessionFlags, empty_flags
from app.utils.client_credentials import ClientCredentialsToken


@dataclass
class AppServices:
    """Everything a request handler may need, built once per process."""

    settings: Settings
    store: DocumentStore
    directory: ConversationDirectory
    notifications: NotificationQueue
    session_flags: SessionFlags
    gateway: ChatGateway
    llm: LLMTextService
    directory_service: GraphDirectoryService
    orchestrator: ConversationOrchestrator
    http: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        await self.llm.close()
        if self.http is not None:
            await self.http.aclose()


def build_services(
    settings: Settings,
    gateway: Optional[ChatGateway] = None,
    llm: Optional[LLMTextService] = None,
    http: Optional[httpx.AsyncClient] = None,
) -> AppServices:
    """Wire the assistant from ``settings``.

    ``gateway`` and ``llm`` replace the default Bot Framework gateway and
    OpenAI-backed service when given.
    """
    data_path = settings.data_path
    http = http or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    store = DocumentStore(
        JsonCollection(data_path / settings.DOCUMENTS_FILE, empty_document_collection),
        content_roots=settings.content_roots,
    )
    directory = ConversationDirectory(
        JsonCollection(data_path / settings.CONVERSATIONS_FILE, empty_directory)
    )
    notifications = NotificationQueue(
        JsonCollection(data_path / settings.NOTIFICATIONS_FILE, empty_notifications),
        history_limit=settings.NOTIFICATION_HISTORY_LIMIT,
    )
    session_flags = SessionFlags(JsonCollection(data_path / settings.SESSION_FLAGS_FILE, empty_flags))

    if gateway is None:
        gateway = BotConnectorGateway(
            http,
            ClientCredentialsToken(
                http,
                tenant=settings.BOT_TOKEN_TENANT,
                client_id=settings.BOT_APP_ID,
                client_secret=settings.BOT_APP_PASSWORD,
                scope=BOT_FRAMEWORK_SCOPE,
            ),
            endpoint_lookup=directory.endpoint_for_conversation,
        )
    llm = llm or create_llm_service(settings)
    directory_service = GraphDirectoryService(
        http,
        ClientCredentialsToken(
            http,
            tenant=settings.TENANT_ID,
            client_id=settings.CLIENT_ID,
            client_secret=settings.CLIENT_SECRET,
            scope=GRAPH_SCOPE,
        ),
        base_url=settings.GRAPH_BASE_URL,
    )

    orchestrator = ConversationOrchestrator(
        store=store,
        directory=directory,
        notifications=notifications,
        session_flags=session_flags,
        gateway=gateway,
        llm=llm,
        directory_service=directory_service,
        typing_interval=settings.TYPING_INTERVAL_SECONDS,
    )

    app_logger.info(f"Services wired with data directory {data_path.resolve()}")
    return AppServices(
        settings=settings,
        store=store,
        directory=directory,
        notifications=notifications,
        session_flags=session_flags,
        gateway=gateway,
        llm=llm,
        directory_service=directory_service,
        orchestrator=orchestrator,
        http=http,
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the services built at startup."""
    return request.app.state.services
