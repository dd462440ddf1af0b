"""Injection workflow: add a document, queue its notification, try to deliver it."""

from __future__ import annotations

from dataclasses import dataclass

from app.config.logger import app_logger
from app.models.document_record import DocumentRecord, DocumentSubmission
from app.models.notification import NotificationTarget
from app.services import cards
from app.services.chat_gateway import ChatGateway
from app.services.conversation_directory import ConversationDirectory
from app.services.document_store import DocumentStore
from app.services.notification_queue import NotificationQueue


@dataclass
class InjectionResult:
    doc: DocumentRecord
    notified: bool


async def inject_document(
    submission: DocumentSubmission,
    store: DocumentStore,
    notifications: NotificationQueue,
    directory: ConversationDirectory,
    gateway: ChatGateway,
) -> InjectionResult:
    """Add ``submission`` to the approval list and notify its approver.

    The notification is always queued. When a conversation is known for the
    target, the "new document" card is also sent right away, once. A
    delivered entry leaves the queue; a failed send keeps it for the next
    greeting.

    Raises:
        OSError: If the document or the notification could not be persisted.
    """
    record = store.add_document(submission)
    entry = notifications.enqueue(
        record,
        NotificationTarget(identity=submission.notify_identity, email=submission.notify_email),
    )

    target = entry.target
    if target is None:
        app_logger.info(f"Notification {entry.id} for {record.id} is untargeted, waiting for next greeting")
        return InjectionResult(doc=record, notified=False)

    conversation_id = directory.find_conversation_for(identity=target.identity, email=target.email)
    if not conversation_id:
        app_logger.info(
            f"No conversation known for identity={target.identity} email={target.email}; "
            f"{record.id} stays queued"
        )
        return InjectionResult(doc=record, notified=False)

    notified = False
    try:
        message_id = await gateway.deliver(conversation_id, cards.build_new_document_card(entry.doc))
        notified = message_id is not None
    except Exception as e:
        app_logger.warning(f"Proactive notification for {record.id} failed: {e}")

    if notified:
        notifications.discard(entry.id)
        app_logger.info(f"Proactively notified conversation {conversation_id} about {record.id}")
    return InjectionResult(doc=record, notified=notified)
