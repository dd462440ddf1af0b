"""Response schemas for the inbound chat event endpoint."""

from pydantic import BaseModel, Field


class EventAccepted(BaseModel):
    """Response schema for POST /api/messages."""

    accepted: bool = Field(default=True)
    conversation_id: str = Field(..., description="Conversation the event belonged to.")

    model_config = {
        "json_schema_extra": {
            "example": {"accepted": True, "conversation_id": "a:1xYz"}
        }
    }
