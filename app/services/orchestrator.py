"""
Conversation orchestrator for the approval assistant.

Handles one inbound chat event at a time:

- Identity propagation: every event refreshes the conversation directory.
  When only the directory identity is known, a detached task looks up the
  email and re-upserts. Lookup outcomes are published on ``lookup_results``, which keeps
  only the most recent ``LOOKUP_RESULTS_LIMIT`` entries.
- Card-submit actions are dispatched first, in a fixed precedence.
- Plain text is classified as greeting (or first message), file upload,
  change command, or echoed back.
- Slow work (summaries, answers, approvals) runs behind a loading
  placeholder with a typing heartbeat.
"""

from __future__ import annotations

import asyncio
import re
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Set

from app.config.logger import app_logger, conversation_logger, log_performance
from app.models.document_record import APPROVED, REJECTED, DocumentRecord
from app.models.inbound_event import InboundEvent
from app.services import cards
from app.services.activity_utils import get_uploaded_file_name, summarize_event
from app.services.chat_gateway import ChatGateway, MessageContent
from app.services.conversation_directory import ConversationDirectory
from app.services.document_identifier import identify_document_type
from app.services.document_store import DocumentStore
from app.services.notification_queue import NotificationQueue
from app.services.session_flags import SessionFlags


DEFAULT_TYPING_INTERVAL = 3.0
LOOKUP_RESULTS_LIMIT = 100

GREETING_RE = re.compile(
    r"^\s*(hi|hello|hey|hallo|hiya|good\s+(morning|afternoon|evening)|start|/start)\b[\s!.,]*",
    re.IGNORECASE,
)
CHANGE_RE = re.compile(r"^\s*change\b[\s:,-]*(?P<summary>.*)$", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class EmailLookupResult:
    """Outcome of a background email lookup."""

    conversation_id: str
    identity: str
    email: Optional[str]


def is_greeting(text: str) -> bool:
    return bool(GREETING_RE.match(text or ""))


class ConversationOrchestrator:
    """Routes inbound events to handlers and talks back through the gateway."""

    def __init__(
        self,
        store: DocumentStore,
        directory: ConversationDirectory,
        notifications: NotificationQueue,
        session_flags: SessionFlags,
        gateway: ChatGateway,
        llm,
        directory_service,
        typing_interval: float = DEFAULT_TYPING_INTERVAL,
    ):
        """
        Args:
            store: Document record store.
            directory: Conversation directory, refreshed on every event.
            notifications: Queue drained when a user greets the assistant.
            session_flags: Holds the one-shot "welcomed" flag.
            gateway: Outbound chat gateway.
            llm: Object with async ``summarize(text, images)`` and
                ``answer(text, question, images)``.
            directory_service: Object with async ``resolve_email(identity)``.
            typing_interval: Seconds between typing signals while working.
        """
        self._store = store
        self._directory = directory
        self._notifications = notifications
        self._flags = session_flags
        self._gateway = gateway
        self._llm = llm
        self._directory_service = directory_service
        self._typing_interval = typing_interval

        self._background: Set[asyncio.Task] = set()
        self.lookup_results: "asyncio.Queue[EmailLookupResult]" = asyncio.Queue(maxsize=LOOKUP_RESULTS_LIMIT)

        self._action_handlers: Dict[str, Callable[[InboundEvent], Awaitable[None]]] = {
            cards.ACTION_SHOW_PENDING: self._show_pending_list,
            cards.ACTION_SELECT_DOC: self._select_document,
            cards.ACTION_ASK_QUESTION: self._ask_question,
            cards.ACTION_APPROVE: self._approve,
            cards.ACTION_REJECT: self._reject,
            cards.ACTION_DISMISS: self._dismiss,
            cards.ACTION_ACK_CHANGE: self._ack_change,
            cards.ACTION_CHANGE_DETAILS: self._request_change_details,
            cards.ACTION_CONFIRM_DOCUMENT: self._confirm_document,
            cards.ACTION_REJECT_DOCUMENT: self._reject_document,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle_event(self, event: InboundEvent) -> None:
        start = time.perf_counter()
        log = conversation_logger(event.conversation_id)
        log.debug(f"Inbound event: {summarize_event(event)}")

        self._propagate_identity(event)

        action = event.action
        handler = self._action_handlers.get(action) if action else None
        if handler is not None:
            log.info(f"Handling card action '{action}'")
            await handler(event)
        else:
            if action:
                log.warning(f"Unknown card action '{action}', treating event as text")
            await self._handle_text(event)

        log_performance("handle_event", time.perf_counter() - start, action=action or "text")

    async def _handle_text(self, event: InboundEvent) -> None:
        text = (event.text or "").strip()

        if is_greeting(text) or not self._flags.has_been_welcomed(event.conversation_id):
            await self._greet(event)
            return

        file_name = get_uploaded_file_name(event)
        if file_name:
            result = identify_document_type(file_name)
            app_logger.info(f"Uploaded file '{file_name}' identified as {result.type}")
            await self._send(event.conversation_id, cards.build_document_info_card(file_name, result))
            return

        change = CHANGE_RE.match(text)
        if change:
            summary = change.group("summary").strip() or "A change was requested."
            await self._send(
                event.conversation_id,
                cards.build_user_change_card(summary, user_display_name=event.sender_display_name),
            )
            return

        if text:
            await self._send(event.conversation_id, f"you said: {text}")

    # ------------------------------------------------------------------
    # Identity propagation
    # ------------------------------------------------------------------

    def _known_email(self, identity: Optional[str]) -> Optional[str]:
        ref = self._directory.get_by_identity(identity) if identity else None
        return ref.email if ref else None

    def _requester_email(self, event: InboundEvent) -> Optional[str]:
        return event.sender_email or self._known_email(event.sender_identity)

    def _propagate_identity(self, event: InboundEvent) -> None:
        identity = event.sender_identity
        email = self._requester_email(event)

        self._directory.upsert(
            event.conversation_id,
            identity=identity,
            email=email,
            channel_endpoint=event.channel_endpoint,
            user_label=event.sender_display_name,
        )

        if identity and not email:
            task = asyncio.create_task(self._lookup_email(event), name=f"email-lookup:{identity}")
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _lookup_email(self, event: InboundEvent) -> Optional[str]:
        identity = event.sender_identity
        try:
            email = await self._directory_service.resolve_email(identity)
        except Exception as e:
            app_logger.warning(f"Email lookup for {identity} failed: {e}")
            email = None

        if email:
            self._directory.upsert(
                event.conversation_id,
                identity=identity,
                email=email,
                channel_endpoint=event.channel_endpoint,
                user_label=event.sender_display_name,
            )
            app_logger.info(f"Resolved email for {identity}")

        self._publish_lookup(
            EmailLookupResult(conversation_id=event.conversation_id, identity=identity, email=email)
        )
        return email

    def _publish_lookup(self, result: EmailLookupResult) -> None:
        # Oldest result is dropped when nobody drains the queue.
        if self.lookup_results.full():
            self.lookup_results.get_nowait()
        self.lookup_results.put_nowait(result)

    async def wait_for_background(self) -> None:
        """Wait until every outstanding email lookup has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Gateway calls (collaborator failures never escape)
    # ------------------------------------------------------------------

    async def _send(self, conversation_id: str, content: MessageContent) -> Optional[str]:
        try:
            return await self._gateway.deliver(conversation_id, content)
        except Exception as e:
            app_logger.warning(f"Deliver to {conversation_id} failed: {e}")
            return None

    async def _update(self, conversation_id: str, message_id: str, content: MessageContent) -> bool:
        try:
            return bool(await self._gateway.update_message(conversation_id, message_id, content))
        except Exception as e:
            app_logger.debug(f"Update of {message_id} failed: {e}")
            return False

    async def _delete(self, conversation_id: str, message_id: str) -> bool:
        try:
            return bool(await self._gateway.delete_message(conversation_id, message_id))
        except Exception as e:
            app_logger.debug(f"Delete of {message_id} failed: {e}")
            return False

    async def _respond(self, event: InboundEvent, content: MessageContent) -> None:
        """Replace the triggering card when possible, otherwise send anew."""
        if event.reply_to_message_id and await self._update(event.conversation_id, event.reply_to_message_id, content):
            return
        await self._send(event.conversation_id, content)

    # ------------------------------------------------------------------
    # Loading placeholder
    # ------------------------------------------------------------------

    async def _typing_heartbeat(self, conversation_id: str) -> None:
        while True:
            try:
                await self._gateway.send_typing(conversation_id)
            except Exception as e:
                app_logger.debug(f"Typing signal failed: {e}")
            await asyncio.sleep(self._typing_interval)

    async def _show_placeholder(self, event: InboundEvent, loading: MessageContent) -> Optional[str]:
        conversation_id = event.conversation_id
        trigger_id = event.reply_to_message_id
        if trigger_id:
            if await self._update(conversation_id, trigger_id, loading):
                return trigger_id
            await self._delete(conversation_id, trigger_id)
        return await self._send(conversation_id, loading)

    async def _replace_placeholder(
        self, conversation_id: str, placeholder_id: Optional[str], final: MessageContent
    ) -> None:
        if placeholder_id and await self._update(conversation_id, placeholder_id, final):
            return
        await self._send(conversation_id, final)
        if placeholder_id:
            await self._delete(conversation_id, placeholder_id)

    async def _run_with_placeholder(
        self,
        event: InboundEvent,
        work: Callable[[], Awaitable[MessageContent]],
        loading_message: str,
    ) -> None:
        """Show a loading card, run ``work`` and swap in its result.

        Any exception raised by ``work`` becomes a generic error card.
        """
        conversation_id = event.conversation_id
        typing = asyncio.create_task(self._typing_heartbeat(conversation_id))
        try:
            placeholder_id = await self._show_placeholder(event, cards.build_loading_card(message=loading_message))
            try:
                final = await work()
            except Exception as e:
                app_logger.error(f"Work failed in {conversation_id}: {e}")
                final = cards.build_error_card()
        finally:
            typing.cancel()
            with suppress(asyncio.CancelledError):
                await typing

        await self._replace_placeholder(conversation_id, placeholder_id, final)

    # ------------------------------------------------------------------
    # Greeting
    # ------------------------------------------------------------------

    async def _greet(self, event: InboundEvent) -> None:
        conversation_id = event.conversation_id
        pending = self._store.list_pending()
        await self._send(
            conversation_id,
            cards.build_pending_approvals_card(pending, user_label=event.sender_display_name),
        )
        self._flags.mark_welcomed(conversation_id)

        entries = self._notifications.drain_for(
            identity=event.sender_identity, email=self._requester_email(event)
        )
        if not entries:
            return
        if len(entries) > 1:
            app_logger.info(f"Delivering newest of {len(entries)} drained notifications to {conversation_id}")
        await self._send(conversation_id, cards.build_new_document_card(entries[0].doc))

    # ------------------------------------------------------------------
    # Card actions
    # ------------------------------------------------------------------

    def _lookup_document(self, event: InboundEvent) -> Optional[DocumentRecord]:
        doc_id = (event.submitted_action or {}).get("docId")
        return self._store.get_by_id(str(doc_id)) if doc_id else None

    async def _document_not_found(self, event: InboundEvent) -> None:
        doc_id = (event.submitted_action or {}).get("docId") or "(none)"
        await self._send(event.conversation_id, f"Document {doc_id} was not found.")

    async def _show_pending_list(self, event: InboundEvent) -> None:
        await self._respond(event, cards.build_pending_list_card(self._store.list_pending()))

    async def _select_document(self, event: InboundEvent) -> None:
        record = self._lookup_document(event)
        if record is None:
            await self._document_not_found(event)
            return

        async def summarize() -> MessageContent:
            text = self._store.get_text(record)
            if not text.strip():
                app_logger.info(f"No readable content for {record.id}, showing details only")
                return cards.build_document_details_card(record)
            images = self._store.get_images(record)
            try:
                summary = await self._llm.summarize(text, images)
            except Exception as e:
                app_logger.warning(f"Summary of {record.id} failed: {e}")
                summary = f"Failed to summarize document: {e}"
            return cards.build_summary_card(record, summary)

        await self._run_with_placeholder(event, summarize, "Reading and summarizing the document…")

    async def _ask_question(self, event: InboundEvent) -> None:
        record = self._lookup_document(event)
        if record is None:
            await self._document_not_found(event)
            return

        question = str((event.submitted_action or {}).get("question") or "").strip()
        if not question:
            await self._send(event.conversation_id, "Please type a question first.")
            return

        async def answer() -> MessageContent:
            text = self._store.get_text(record)
            images = self._store.get_images(record)
            try:
                reply = await self._llm.answer(text, question, images)
            except Exception as e:
                app_logger.warning(f"Answer for {record.id} failed: {e}")
                reply = f"Failed to answer question: {e}"
            return cards.build_answer_card(record, question, reply)

        await self._run_with_placeholder(event, answer, "Looking for the answer in the document…")

    async def _set_state(self, event: InboundEvent, state: str, verb: str) -> None:
        record = self._lookup_document(event)
        if record is None:
            await self._document_not_found(event)
            return

        async def transition() -> MessageContent:
            if not self._store.set_state(record.id, state):
                return cards.build_info_card(
                    "Could not update document",
                    f"{record.display_title} could not be marked as {verb}. Please try again.",
                )
            app_logger.info(f"{record.id} {verb} by {event.sender_identity or event.sender_display_name}")
            return cards.build_info_card(f"Document {verb}", f"{record.display_title} ({record.id})")

        await self._run_with_placeholder(event, transition, f"Marking the document as {verb}…")

    async def _approve(self, event: InboundEvent) -> None:
        await self._set_state(event, APPROVED, "approved")

    async def _reject(self, event: InboundEvent) -> None:
        await self._set_state(event, REJECTED, "rejected")

    async def _dismiss(self, event: InboundEvent) -> None:
        if event.reply_to_message_id and await self._delete(event.conversation_id, event.reply_to_message_id):
            return
        await self._send(event.conversation_id, "OK. Say hi whenever you want to see pending approvals again.")

    async def _ack_change(self, event: InboundEvent) -> None:
        await self._respond(event, cards.build_info_card("Change acknowledged"))

    async def _request_change_details(self, event: InboundEvent) -> None:
        await self._send(event.conversation_id, "Please reply with the details of the change.")

    async def _confirm_document(self, event: InboundEvent) -> None:
        data = event.submitted_action or {}
        await self._respond(
            event,
            cards.build_info_card(
                "Document confirmed",
                f"{data.get('fileName') or 'The file'} is recorded as {data.get('docType') or 'Unknown'}.",
            ),
        )

    async def _reject_document(self, event: InboundEvent) -> None:
        data = event.submitted_action or {}
        await self._respond(
            event,
            cards.build_info_card(
                "Thanks for the feedback",
                f"{data.get('fileName') or 'The file'} was not identified correctly.",
            ),
        )
