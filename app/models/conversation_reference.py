"""Stored pointer back to a user's conversation with the bot."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.document_record import utc_now_iso


class ConversationReference(BaseModel):
    """Everything the chat gateway needs to reach a conversation again."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(..., alias="conversationId")
    channel_endpoint: Optional[str] = Field(
        default=None,
        alias="channelEndpoint",
        description="Gateway service URL used to reconnect to the conversation",
    )
    updated_at: str = Field(default_factory=utc_now_iso, alias="updatedAt")
    user_label: Optional[str] = Field(default=None, alias="userLabel")
    email: Optional[str] = None

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
