"""
Tests for the document record store.

Covers:
- Id assignment and defaults on add
- Idempotent state transitions
- Degraded reads of missing / corrupt files
- One-time legacy schema migration
- Content resolution against configured roots
"""

import json

import pytest

from app.db.json_store import JsonCollection
from app.db.migrations import migrate_document_collection
from app.models.document_record import APPROVED, PENDING_APPROVAL, REJECTED
from app.services.document_store import DocumentStore, empty_document_collection, next_document_id


def make_store(tmp_path, content_roots=()):
    collection = JsonCollection(tmp_path / "approvalDocuments.json", empty_document_collection)
    return DocumentStore(collection, content_roots=content_roots)


class TestAddDocument:
    """Adding records to the approval list."""

    def test_ids_are_monotonic(self, tmp_path):
        store = make_store(tmp_path)

        ids = [store.add_document({"localPath": f"docs/{n}.txt", "Title": f"Doc {n}"}).id for n in range(1, 4)]

        assert ids == ["DOC-001", "DOC-002", "DOC-003"]

    def test_defaults_are_applied(self, tmp_path):
        store = make_store(tmp_path)

        record = store.add_document({"localPath": "docs/spec.txt", "Title": "Spec v2"})

        assert record.state == PENDING_APPROVAL
        assert record.doc_type == "TXT"
        assert record.original_file_name == "spec.txt"
        assert record.format == "*"
        assert record.document_sheet == "1"
        assert record.document_status == "Preliminary"
        assert record.file_status == "Checked In"
        assert record.language == "en"
        assert record.document_type == "ORIGINAL"
        assert record.date_created

    def test_record_is_persisted_with_wire_names(self, tmp_path):
        store = make_store(tmp_path)
        store.add_document({"localPath": "docs/spec.pdf", "Title": "Spec", "DocumentNo": "1028340"})

        raw = json.loads((tmp_path / "approvalDocuments.json").read_text(encoding="utf-8"))

        assert raw["documents"][0]["Title"] == "Spec"
        assert raw["documents"][0]["DocumentNo"] == "1028340"
        assert raw["documents"][0]["docType"] == "PDF"

    def test_next_document_id_ignores_foreign_ids(self):
        assert next_document_id(["DOC-007", "legacy-1", "DOC-002"]) == "DOC-008"
        assert next_document_id([]) == "DOC-001"


class TestSetState:
    """Workflow state transitions."""

    def test_set_state_is_idempotent(self, tmp_path):
        store = make_store(tmp_path)
        doc = store.add_document({"localPath": "docs/spec.txt", "Title": "Spec"})
        path = tmp_path / "approvalDocuments.json"

        assert store.set_state(doc.id, APPROVED) is True
        first = path.read_text(encoding="utf-8")
        assert store.set_state(doc.id, APPROVED) is True

        assert path.read_text(encoding="utf-8") == first
        assert store.get_by_id(doc.id).state == APPROVED

    def test_pending_list_excludes_decided_documents(self, tmp_path):
        store = make_store(tmp_path)
        a = store.add_document({"localPath": "a.txt", "Title": "A"})
        store.add_document({"localPath": "b.txt", "Title": "B"})

        store.set_state(a.id, REJECTED)

        assert [d.title for d in store.list_pending()] == ["B"]
        assert len(store.list_all()) == 2

    def test_unknown_id_or_state_is_refused(self, tmp_path):
        store = make_store(tmp_path)
        doc = store.add_document({"localPath": "a.txt", "Title": "A"})

        assert store.set_state("DOC-999", APPROVED) is False
        assert store.set_state(doc.id, "archived") is False

    def test_write_failure_returns_false(self, tmp_path, monkeypatch):
        store = make_store(tmp_path)
        doc = store.add_document({"localPath": "a.txt", "Title": "A"})

        def fail(data):
            raise OSError("disk full")

        monkeypatch.setattr(store._collection, "write", fail)

        assert store.set_state(doc.id, APPROVED) is False


class TestDegradedReads:
    """Missing and corrupt collections read as empty."""

    def test_missing_file(self, tmp_path):
        assert make_store(tmp_path).list_all() == []

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "approvalDocuments.json").write_text("{not json", encoding="utf-8")

        store = make_store(tmp_path)

        assert store.list_all() == []
        assert store.add_document({"localPath": "a.txt", "Title": "A"}).id == "DOC-001"


class TestLegacyMigration:
    """The one-time rewrite of legacy collections."""

    LEGACY = {
        "pending": [
            {
                "id": "DOC-004",
                "state": "pendigApprovel",
                "title": "Old spec",
                "fileName": "old-spec.pdf",
                "docNo": "1028340",
                "submittedBy": "jane@example.com",
            }
        ]
    }

    def test_legacy_file_is_rewritten_once(self, tmp_path):
        path = tmp_path / "approvalDocuments.json"
        path.write_text(json.dumps(self.LEGACY), encoding="utf-8")
        collection = JsonCollection(path, empty_document_collection)

        assert migrate_document_collection(collection) is True
        assert migrate_document_collection(collection) is False

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert "pending" not in raw
        doc = raw["documents"][0]
        assert doc["Title"] == "Old spec"
        assert doc["OriginalFileName"] == "old-spec.pdf"
        assert doc["DocumentNo"] == "1028340"
        assert doc["CreatedBy"] == "jane@example.com"
        assert doc["state"] == PENDING_APPROVAL
        assert doc["docType"] == "PDF"

    def test_store_migrates_on_construction(self, tmp_path):
        (tmp_path / "approvalDocuments.json").write_text(json.dumps(self.LEGACY), encoding="utf-8")

        store = make_store(tmp_path)

        pending = store.list_pending()
        assert [d.id for d in pending] == ["DOC-004"]
        assert store.add_document({"localPath": "n.txt", "Title": "New"}).id == "DOC-005"


class TestContent:
    """Text and image retrieval."""

    def test_relative_path_resolved_against_roots_in_order(self, tmp_path):
        first = tmp_path / "first"
        second = tmp_path / "second"
        (second / "docs").mkdir(parents=True)
        (second / "docs" / "spec.txt").write_text("Pump pressure 10 bar", encoding="utf-8")
        store = make_store(tmp_path, content_roots=[first, second])

        doc = store.add_document({"localPath": "docs/spec.txt", "Title": "Spec"})

        assert store.get_text(doc) == "Pump pressure 10 bar"
        assert store.get_images(doc) == []

    def test_absolute_path(self, tmp_path):
        target = tmp_path / "abs.md"
        target.write_text("# Heading", encoding="utf-8")
        store = make_store(tmp_path)

        doc = store.add_document({"localPath": str(target), "Title": "Abs"})

        assert store.get_text(doc) == "# Heading"

    def test_unreadable_content_yields_empty_text(self, tmp_path):
        (tmp_path / "blob.bin").write_bytes(b"\x00\x01")
        store = make_store(tmp_path, content_roots=[tmp_path])

        missing = store.add_document({"localPath": "nowhere.txt", "Title": "Missing"})
        unsupported = store.add_document({"localPath": "blob.bin", "Title": "Blob"})

        assert store.get_text(missing) == ""
        assert store.get_text(unsupported) == ""

    @pytest.mark.parametrize("name,doc_type", [("a.docx", "DOCX"), ("b.PPTX", "PPTX"), ("c.xlsb", "XLSB")])
    def test_doc_type_inferred_from_extension(self, tmp_path, name, doc_type):
        store = make_store(tmp_path)

        assert store.add_document({"localPath": name, "Title": name}).doc_type == doc_type
