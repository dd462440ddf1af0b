from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Base settings for the application."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "DocuMate Approval Assistant"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Conversational document approval assistant"
    APP_AUTHOR: str = "DocuMate Development Team"
    LOG_LEVEL: str = "INFO"
    LOGS_DIR: str = "logs"

    # Persisted collections (flat JSON files)
    DATA_DIR: str = "data"
    DOCUMENTS_FILE: str = "approvalDocuments.json"
    NOTIFICATIONS_FILE: str = "pendingNotifications.json"
    CONVERSATIONS_FILE: str = "conversationRegistry.json"
    SESSION_FLAGS_FILE: str = "sessionFlags.json"

    # Ordered base directories used to resolve a relative document localPath.
    # Comma separated; empty means "the working directory".
    DOCUMENTS_CONTENT_ROOTS: str = ""

    NOTIFICATION_HISTORY_LIMIT: int = 25
    TYPING_INTERVAL_SECONDS: float = 3.0

    # LLM settings (Azure OpenAI preferred, plain OpenAI as fallback)
    AZURE_OPENAI_ENDPOINT: str = ""
    AZURE_OPENAI_API_KEY: str = ""
    AZURE_OPENAI_DEPLOYMENT: str = ""
    AZURE_OPENAI_API_VERSION: str = "2024-04-01-preview"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    LLM_MAX_INPUT_CHARS: int = 12000
    LLM_MAX_QUESTION_CHARS: int = 800
    LLM_SUMMARY_MAX_TOKENS: int = 600
    LLM_ANSWER_MAX_TOKENS: int = 700

    # Directory service (Microsoft Graph, client credentials)
    TENANT_ID: str = ""
    CLIENT_ID: str = ""
    CLIENT_SECRET: str = Field(default="", description="App registration secret for Graph lookups")
    GRAPH_BASE_URL: str = "https://graph.microsoft.com/v1.0"

    # Chat gateway (Bot Framework connector)
    BOT_APP_ID: str = ""
    BOT_APP_PASSWORD: str = ""
    BOT_TOKEN_TENANT: str = "botframework.com"
    HTTP_TIMEOUT_SECONDS: float = 15.0

    @computed_field
    @property
    def data_path(self) -> Path:
        """Directory holding the persisted JSON collections."""
        return Path(self.DATA_DIR)

    @computed_field
    @property
    def content_roots(self) -> List[Path]:
        """Resolve the ordered content roots for relative document paths.

        Falls back to the current working directory when nothing is configured.
        """
        roots = [Path(p.strip()) for p in self.DOCUMENTS_CONTENT_ROOTS.split(",") if p.strip()]
        return roots or [Path.cwd()]

    @computed_field
    @property
    def azure_openai_configured(self) -> bool:
        return bool(
            self.AZURE_OPENAI_ENDPOINT.strip()
            and self.AZURE_OPENAI_API_KEY.strip()
            and self.AZURE_OPENAI_DEPLOYMENT.strip()
        )


settings = Settings()
