"""Document record store for the approval workflow.

Owns the persisted document collection. Other components read records or
request a state transition through this store; nothing else writes the file.
Records are never deleted, approved and rejected documents stay for history.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePath
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from app.config.logger import app_logger
from app.db.json_store import JsonCollection
from app.db.migrations import migrate_document_collection
from app.models.document_record import (
    WORKFLOW_STATES,
    DocumentRecord,
    DocumentSubmission,
    infer_doc_type,
    is_pending,
    utc_now_iso,
)
from app.services.text_extraction import extract_images, extract_text


DOC_ID_RE = re.compile(r"^DOC-(\d+)$", re.IGNORECASE)


def empty_document_collection() -> Dict[str, Any]:
    return {"documents": []}


def next_document_id(existing_ids: Sequence[str]) -> str:
    """Next ``DOC-###`` id after the highest existing numeric id."""
    numbers = []
    for doc_id in existing_ids:
        match = DOC_ID_RE.match(str(doc_id or ""))
        if match:
            numbers.append(int(match.group(1)))
    return f"DOC-{(max(numbers) if numbers else 0) + 1:03d}"


class DocumentStore:
    """File-backed store of DocumentRecords."""

    def __init__(
        self,
        collection: JsonCollection,
        content_roots: Sequence[Union[str, Path]] = (),
        text_extractor: Callable[[Path], str] = extract_text,
        image_extractor: Callable[[Path], List[str]] = extract_images,
    ):
        """
        Args:
            collection: Persisted document collection.
            content_roots: Ordered base directories for relative ``localPath``
                values. Defaults to the working directory.
            text_extractor: Reads text from a resolved content path.
            image_extractor: Reads embedded images from a resolved content path.
        """
        self._collection = collection
        self._content_roots = [Path(r) for r in content_roots] or [Path.cwd()]
        self._extract_text = text_extractor
        self._extract_images = image_extractor
        migrate_document_collection(collection)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _raw_documents(self) -> List[Dict[str, Any]]:
        documents = self._collection.read().get("documents")
        if not isinstance(documents, list):
            return []
        return [d for d in documents if isinstance(d, dict)]

    def list_all(self) -> List[DocumentRecord]:
        """All records, in insertion order."""
        records = []
        for raw in self._raw_documents():
            try:
                records.append(DocumentRecord.model_validate(raw))
            except ValidationError as e:
                app_logger.warning(f"Skipping malformed document record {raw.get('id')!r}: {e}")
        return records

    def list_pending(self) -> List[DocumentRecord]:
        return [r for r in self.list_all() if is_pending(r.state)]

    def get_by_id(self, doc_id: Optional[str]) -> Optional[DocumentRecord]:
        if not doc_id:
            return None
        return next((r for r in self.list_all() if r.id == doc_id), None)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_document(self, submission: Union[DocumentSubmission, Dict[str, Any]]) -> DocumentRecord:
        """Append a new pending record and persist the collection.

        Raises:
            OSError: If the collection could not be written.
        """
        if not isinstance(submission, DocumentSubmission):
            submission = DocumentSubmission.model_validate(submission)

        with self._collection.locked():
            documents = self._raw_documents()
            doc_id = next_document_id([d.get("id", "") for d in documents])

            file_name = submission.original_file_name or PurePath(submission.local_path).name
            doc_type = (
                submission.doc_type
                or infer_doc_type(file_name)
                or infer_doc_type(submission.local_path)
            )
            now = utc_now_iso()

            record = DocumentRecord(
                id=doc_id,
                local_path=submission.local_path,
                doc_type=doc_type,
                title=submission.title,
                document_no=submission.document_no or "",
                document_class=submission.document_class or "",
                format=submission.format or "*",
                document_sheet=submission.document_sheet or "1",
                document_revision=submission.document_revision or "",
                original_file_type=submission.original_file_type or doc_type or "",
                document_status=submission.document_status or "Preliminary",
                file_status=submission.file_status or "Checked In",
                language=submission.language or "en",
                responsible_person=submission.responsible_person or "",
                modified_by=submission.modified_by or "",
                created_by=submission.created_by or "",
                original_creator=submission.original_creator or "",
                date_created=submission.date_created or now,
                modified=submission.modified or now,
                checked_out_by=submission.checked_out_by or "",
                document_type=submission.document_type or "ORIGINAL",
                original_file_name=file_name,
            )

            documents.append(record.to_storage())
            self._collection.write({"documents": documents})

        app_logger.info(f"Added document {record.id} '{record.title}' for approval")
        return record

    def set_state(self, doc_id: Optional[str], state: str) -> bool:
        """Move a record to ``state``.

        Returns:
            False if the id is unknown, the state is invalid or the write
            failed; True once the new state is persisted.
        """
        if not doc_id:
            return False
        if state not in WORKFLOW_STATES:
            app_logger.warning(f"Refusing unknown workflow state {state!r} for {doc_id}")
            return False

        try:
            with self._collection.locked():
                documents = self._raw_documents()
                target = next((d for d in documents if d.get("id") == doc_id), None)
                if target is None:
                    return False
                target["state"] = state
                self._collection.write({"documents": documents})
        except OSError as e:
            app_logger.error(f"Failed to persist state {state} for {doc_id}: {e}")
            return False

        app_logger.info(f"Document {doc_id} moved to {state}")
        return True

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _candidate_paths(self, record: DocumentRecord) -> List[Path]:
        local_path = (record.local_path or "").strip()
        if not local_path:
            return []
        path = Path(local_path)
        if path.is_absolute():
            return [path]
        return [root / path for root in self._content_roots]

    def get_text(self, record: DocumentRecord) -> str:
        """Extracted text of the record's content, or "" if none is readable."""
        for candidate in self._candidate_paths(record):
            if not candidate.exists():
                continue
            try:
                return self._extract_text(candidate)
            except Exception as e:
                app_logger.debug(f"Text extraction failed for {candidate}: {e}")
        return ""

    def get_images(self, record: DocumentRecord) -> List[str]:
        """Embedded images of the record's content as data URLs."""
        for candidate in self._candidate_paths(record):
            if not candidate.exists():
                continue
            try:
                return self._extract_images(candidate)
            except Exception as e:
                app_logger.debug(f"Image extraction failed for {candidate}: {e}")
        return []
