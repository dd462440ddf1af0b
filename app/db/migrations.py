"""One-time migration of the document collection to the current schema.

Early approval feeds wrote ``{"pending": [...]}`` with camelCase fields
(``title``, ``fileName``, ``docNo`` ...) and sometimes a misspelled pending
state. The migration rewrites such a file once into
``{"documents": [...]}`` with the current field names, so the document
store only ever reads one schema.
"""

from typing import Any, Dict, List

from app.config.logger import app_logger
from app.db.json_store import JsonCollection
from app.models.document_record import infer_doc_type, normalize_state


LEGACY_FIELD_MAP = {
    "title": "Title",
    "fileName": "OriginalFileName",
    "docClass": "DocumentClass",
    "docNo": "DocumentNo",
    "docSheet": "DocumentSheet",
    "docRev": "DocumentRevision",
    "submittedBy": "CreatedBy",
    "submittedAt": "DateCreated",
}


def normalize_legacy_document(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``raw`` using current field names and a canonical state."""
    doc = dict(raw)
    for legacy_key, current_key in LEGACY_FIELD_MAP.items():
        if legacy_key not in doc:
            continue
        value = doc.pop(legacy_key)
        if doc.get(current_key) in (None, "") and value not in (None, ""):
            doc[current_key] = value

    doc["state"] = normalize_state(doc.get("state"))
    if not doc.get("docType"):
        doc_type = infer_doc_type(doc.get("OriginalFileName")) or infer_doc_type(doc.get("localPath"))
        if doc_type:
            doc["docType"] = doc_type
    return doc


def _needs_migration(data: Dict[str, Any]) -> bool:
    if isinstance(data.get("pending"), list) and not isinstance(data.get("documents"), list):
        return True
    documents = data.get("documents")
    if not isinstance(documents, list):
        return False
    return any(
        isinstance(d, dict) and (any(k in d for k in LEGACY_FIELD_MAP) or normalize_state(d.get("state")) != d.get("state"))
        for d in documents
    )


def migrate_document_collection(collection: JsonCollection) -> bool:
    """Rewrite a legacy document collection in place.

    Returns:
        True if the file was rewritten, False if it was already current
        (or missing).
    """
    with collection.locked():
        data = collection.read()
        if not _needs_migration(data):
            return False

        source: List[Any] = data.get("documents") if isinstance(data.get("documents"), list) else data.get("pending", [])
        migrated = [normalize_legacy_document(d) for d in source if isinstance(d, dict)]
        collection.write({"documents": migrated})

    app_logger.info(f"Migrated {len(migrated)} document(s) in {collection.path} to the current schema")
    return True
