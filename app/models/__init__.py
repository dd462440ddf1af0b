"""Models module - domain records persisted in the JSON collections."""

from app.models.document_record import DocumentRecord, DocumentSubmission
from app.models.notification import DocumentSnapshot, NotificationEntry, NotificationTarget
from app.models.conversation_reference import ConversationReference
from app.models.inbound_event import Attachment, InboundEvent

__all__ = [
    "DocumentRecord",
    "DocumentSubmission",
    "DocumentSnapshot",
    "NotificationEntry",
    "NotificationTarget",
    "ConversationReference",
    "Attachment",
    "InboundEvent",
]
