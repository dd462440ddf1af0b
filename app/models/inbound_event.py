"""Normalized inbound chat event delivered by the chat gateway."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Attachment(BaseModel):
    """A file or card attached to an inbound message."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    content_type: str = Field(default="", alias="contentType")
    name: Optional[str] = None
    content: Any = None
    content_url: Optional[str] = Field(default=None, alias="contentUrl")


class InboundEvent(BaseModel):
    """One inbound message or card-submit action."""

    conversation_id: str = Field(..., alias="conversationId")
    channel_endpoint: Optional[str] = Field(default=None, alias="channelEndpoint")
    sender_identity: Optional[str] = Field(
        default=None,
        alias="senderIdentity",
        description="Directory identity of the sender (AAD object id)",
    )
    sender_email: Optional[str] = Field(default=None, alias="senderEmail")
    sender_display_name: Optional[str] = Field(default=None, alias="senderDisplayName")
    text: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    submitted_action: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="submittedActionPayload",
        description="Data of the Action.Submit that produced this event",
    )
    reply_to_message_id: Optional[str] = Field(default=None, alias="replyToMessageId")
    channel_data: Optional[Dict[str, Any]] = Field(default=None, alias="channelData")
    entities: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "conversationId": "a:1xYz",
                "channelEndpoint": "https://smba.trafficmanager.net/emea/",
                "senderIdentity": "00000000-0000-0000-0000-000000000001",
                "senderDisplayName": "Jane Doe",
                "text": "hi",
            }
        },
    )

    @property
    def action(self) -> Optional[str]:
        if not self.submitted_action:
            return None
        value = self.submitted_action.get("action")
        return str(value) if value else None
