"""Inbound chat events from the chat gateway."""

from fastapi import APIRouter, Depends, status

from app.api.messages.schemas import EventAccepted
from app.dependencies import AppServices, get_services
from app.models.inbound_event import InboundEvent

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.post("", response_model=EventAccepted, status_code=status.HTTP_202_ACCEPTED)
async def receive_event(
    event: InboundEvent,
    services: AppServices = Depends(get_services),
):
    """Handle one inbound message or card-submit action.

    Replies go out through the chat gateway; the HTTP response only confirms
    the event was processed.
    """
    await services.orchestrator.handle_event(event)
    return EventAccepted(conversation_id=event.conversation_id)
