"""
Tests for the notification queue.

Covers:
- Target derivation from explicit values and record fields
- Broadcast vs targeted matching
- At-most-once draining
- History cap
"""

import pytest

from app.db.json_store import JsonCollection
from app.models.document_record import DocumentRecord
from app.models.notification import NotificationTarget
from app.services.notification_queue import NotificationQueue, empty_notifications, extract_email


def make_queue(tmp_path, history_limit=25):
    collection = JsonCollection(tmp_path / "pendingNotifications.json", empty_notifications)
    return NotificationQueue(collection, history_limit=history_limit)


def make_record(doc_id="DOC-001", **fields):
    return DocumentRecord(id=doc_id, Title=fields.pop("title", "Spec v2"), **fields)


class TestEnqueue:
    """Admission of new notifications."""

    def test_untargeted_entry_is_broadcast(self, tmp_path):
        queue = make_queue(tmp_path)

        entry = queue.enqueue(make_record())

        assert entry.target is None
        assert entry.is_broadcast
        assert entry.id.startswith("N-")
        assert entry.doc.title == "Spec v2"

    def test_empty_target_is_broadcast(self, tmp_path):
        queue = make_queue(tmp_path)

        entry = queue.enqueue(make_record(), NotificationTarget(identity="  ", email=""))

        assert entry.target is None

    def test_email_derived_from_responsible_person(self, tmp_path):
        queue = make_queue(tmp_path)

        entry = queue.enqueue(make_record(ResponsiblePerson="Jane Doe (Jane.Doe@Example.com)"))

        assert entry.target.email == "jane.doe@example.com"

    def test_explicit_email_wins(self, tmp_path):
        queue = make_queue(tmp_path)
        record = make_record(ResponsiblePerson="jane@example.com")

        entry = queue.enqueue(record, NotificationTarget(email="Bob@Example.com"))

        assert entry.target.email == "bob@example.com"

    def test_newest_first_and_capped(self, tmp_path):
        queue = make_queue(tmp_path, history_limit=3)

        for n in range(1, 6):
            queue.enqueue(make_record(doc_id=f"DOC-00{n}"))

        assert [e.doc.id for e in queue.list_all()] == ["DOC-005", "DOC-004", "DOC-003"]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Jane <jane@contoso>", "jane@contoso"),
            ("nobody here", None),
            (None, None),
        ],
    )
    def test_extract_email(self, text, expected):
        assert extract_email(text) == expected


class TestDrain:
    """Delivery matching and destructive reads."""

    def test_drain_is_at_most_once(self, tmp_path):
        queue = make_queue(tmp_path)
        queue.enqueue(make_record(), NotificationTarget(identity="aad-1"))

        first = queue.drain_for(identity="aad-1")
        second = queue.drain_for(identity="aad-1")

        assert len(first) == 1
        assert second == []

    def test_broadcast_matches_anyone(self, tmp_path):
        queue = make_queue(tmp_path)
        queue.enqueue(make_record())

        assert len(queue.drain_for(identity="someone-else")) == 1

    def test_email_target_matches_only_that_email(self, tmp_path):
        queue = make_queue(tmp_path)
        queue.enqueue(make_record(), NotificationTarget(email="a@b"))

        assert queue.drain_for(identity="aad-other") == []
        assert queue.drain_for(identity="aad-other", email="x@y") == []
        assert len(queue.drain_for(identity="aad-other", email="A@B")) == 1

    def test_unmatched_entries_stay_queued(self, tmp_path):
        queue = make_queue(tmp_path)
        queue.enqueue(make_record("DOC-001"), NotificationTarget(identity="aad-1"))
        queue.enqueue(make_record("DOC-002"), NotificationTarget(identity="aad-2"))

        drained = queue.drain_for(identity="AAD-2")

        assert [e.doc.id for e in drained] == ["DOC-002"]
        assert [e.doc.id for e in queue.list_all()] == ["DOC-001"]

    def test_discard_removes_single_entry(self, tmp_path):
        queue = make_queue(tmp_path)
        entry = queue.enqueue(make_record())

        assert queue.discard(entry.id) is True
        assert queue.discard(entry.id) is False
        assert queue.list_all() == []
