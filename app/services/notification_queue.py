"""Queue of "new document" notifications awaiting delivery.

Entries are admitted most-recent-first into a capped history and removed the
moment they are drained for a matching requester. Draining is destructive
before the caller renders anything: a notification is delivered at most
once, even if rendering it then fails.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.config.logger import app_logger
from app.db.json_store import JsonCollection
from app.models.document_record import DocumentRecord
from app.models.notification import DocumentSnapshot, NotificationEntry, NotificationTarget


DEFAULT_HISTORY_LIMIT = 25

# Accepts placeholder addresses without a TLD ("jane@contoso")
EMAIL_IN_TEXT_RE = re.compile(r"[^\s()<>]+@[^\s()<>]+")


def empty_notifications() -> Dict[str, Any]:
    return {"notifications": []}


def extract_email(value: Optional[str]) -> Optional[str]:
    """First email-shaped substring of ``value``, lower-cased."""
    match = EMAIL_IN_TEXT_RE.search(str(value or ""))
    if not match:
        return None
    return match.group(0).strip().lower() or None


def derive_target_email(record: DocumentRecord, explicit: Optional[str] = None) -> Optional[str]:
    """Best-effort recipient email for a record."""
    if explicit and explicit.strip():
        return explicit.strip().lower()
    for value in (record.responsible_person, record.modified_by, record.created_by, record.original_creator):
        email = extract_email(value)
        if email:
            return email
    return None


def matches_requester(entry: NotificationEntry, requester: NotificationTarget) -> bool:
    """Whether ``entry`` may be delivered to ``requester``.

    Untargeted entries go to anyone. A targeted entry only goes to a
    requester whose identity or email equals the target's.
    """
    target = entry.target
    if target is None or target.is_empty:
        return True
    if target.identity and requester.identity and target.identity == requester.identity:
        return True
    if target.email and requester.email and target.email == requester.email:
        return True
    return False


class NotificationQueue:
    """File-backed notification queue."""

    def __init__(self, collection: JsonCollection, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self._collection = collection
        self._history_limit = history_limit

    def _read_entries(self) -> List[NotificationEntry]:
        raw_entries = self._collection.read().get("notifications")
        if not isinstance(raw_entries, list):
            return []
        entries = []
        for raw in raw_entries:
            try:
                entries.append(NotificationEntry.model_validate(raw))
            except ValidationError as e:
                app_logger.warning(f"Dropping malformed notification entry: {e}")
        return entries

    def _write_entries(self, entries: List[NotificationEntry]) -> None:
        self._collection.write({"notifications": [e.to_storage() for e in entries]})

    def list_all(self) -> List[NotificationEntry]:
        return self._read_entries()

    def enqueue(
        self,
        record: DocumentRecord,
        target: Optional[NotificationTarget] = None,
    ) -> NotificationEntry:
        """Queue a notification for ``record``.

        When no explicit target email is given, one is derived from the
        record's responsible/modifier/creator fields. A target with neither
        identity nor email is stored as a broadcast.

        Raises:
            OSError: If the queue could not be written.
        """
        identity = target.identity if target else None
        email = derive_target_email(record, target.email if target else None)
        resolved = NotificationTarget(identity=identity, email=email)

        entry = NotificationEntry(
            id=f"N-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}",
            target=None if resolved.is_empty else resolved,
            doc=DocumentSnapshot.from_record(record),
        )

        with self._collection.locked():
            entries = self._read_entries()
            entries.insert(0, entry)
            dropped = len(entries) - self._history_limit
            self._write_entries(entries[: self._history_limit])

        if dropped > 0:
            app_logger.debug(f"Notification history full, dropped {dropped} oldest entr(y/ies)")
        app_logger.info(
            f"Queued notification {entry.id} for {record.id} "
            f"(identity={resolved.identity}, email={resolved.email})"
        )
        return entry

    def discard(self, entry_id: str) -> bool:
        """Drop one entry, e.g. after it was delivered proactively."""
        try:
            with self._collection.locked():
                entries = self._read_entries()
                keep = [e for e in entries if e.id != entry_id]
                if len(keep) == len(entries):
                    return False
                self._write_entries(keep)
        except OSError as e:
            app_logger.warning(f"Could not discard notification {entry_id}: {e}")
            return False
        return True

    def drain_for(
        self, identity: Optional[str] = None, email: Optional[str] = None
    ) -> List[NotificationEntry]:
        """Remove and return every entry deliverable to this requester.

        Non-matching entries are written back for later consumers. Any
        failure yields an empty list and leaves the queue unchanged.
        """
        requester = NotificationTarget(identity=identity, email=email)
        try:
            with self._collection.locked():
                entries = self._read_entries()
                deliver = [e for e in entries if matches_requester(e, requester)]
                if not deliver:
                    return []
                keep = [e for e in entries if not matches_requester(e, requester)]
                self._write_entries(keep)
        except Exception as e:
            app_logger.warning(f"Draining notifications failed for identity={identity} email={email}: {e}")
            return []

        app_logger.info(f"Drained {len(deliver)} notification(s) for identity={identity} email={email}")
        return deliver
