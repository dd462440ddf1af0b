"""
Adaptive card builders for the approval conversation.

Every builder returns a plain ``dict`` (Adaptive Card schema 1.5) ready to be
handed to the chat gateway. Card-submit buttons carry ``{"action": ...}``
payloads that the orchestrator dispatches on.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.models.document_record import DocumentRecord
from app.models.notification import DocumentSnapshot
from app.services.document_identifier import DocumentTypeResult


CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
CARD_VERSION = "1.5"
MAX_LIST_ITEMS = 10

# Card-submit action names
ACTION_SHOW_PENDING = "show_pending_approvals"
ACTION_SELECT_DOC = "select_pending_doc"
ACTION_ASK_QUESTION = "ask_doc_question"
ACTION_APPROVE = "approve_doc"
ACTION_REJECT = "reject_doc"
ACTION_DISMISS = "dismiss_pending_approvals"
ACTION_ACK_CHANGE = "ack_change"
ACTION_CHANGE_DETAILS = "request_change_details"
ACTION_CONFIRM_DOCUMENT = "confirm_document"
ACTION_REJECT_DOCUMENT = "reject_document"

Card = Dict[str, Any]


def _card(body: List[Dict[str, Any]], actions: Optional[List[Dict[str, Any]]] = None) -> Card:
    card: Card = {
        "$schema": CARD_SCHEMA,
        "type": "AdaptiveCard",
        "version": CARD_VERSION,
        "body": body,
    }
    if actions:
        card["actions"] = actions
    return card


def _heading(text: str) -> Dict[str, Any]:
    return {"type": "TextBlock", "text": text, "weight": "Bolder", "size": "Large"}


def _text(text: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "TextBlock", "text": text, "wrap": True, **extra}


def _submit(title: str, action: str, **data: Any) -> Dict[str, Any]:
    return {"type": "Action.Submit", "title": title, "data": {"action": action, **data}}


def kv(label: str, value: str) -> Dict[str, Any]:
    """Two-column label/value row."""
    return {
        "type": "ColumnSet",
        "columns": [
            {
                "type": "Column",
                "width": "auto",
                "items": [{"type": "TextBlock", "text": label, "weight": "Bolder"}],
            },
            {
                "type": "Column",
                "width": "stretch",
                "items": [{"type": "TextBlock", "text": value, "wrap": True}],
            },
        ],
    }


def _document_actions(doc_id: str) -> List[Dict[str, Any]]:
    return [
        _submit("Ask", ACTION_ASK_QUESTION, docId=doc_id),
        _submit("Approve", ACTION_APPROVE, docId=doc_id),
        _submit("Reject", ACTION_REJECT, docId=doc_id),
        _submit("Back to list", ACTION_SHOW_PENDING),
    ]


def _document_facts(doc: DocumentRecord) -> List[Dict[str, Any]]:
    rows = []
    if doc.doc_type:
        rows.append(kv("Type", doc.doc_type))
    if doc.document_no:
        rows.append(kv("Document No", doc.document_no))
    if doc.document_class:
        rows.append(kv("Document Class", doc.document_class))
    if doc.document_revision:
        rows.append(kv("Document Rev", doc.document_revision))
    return rows


def build_loading_card(title: str = "Working…", message: str = "Please wait while I process your request.") -> Card:
    return _card([_heading(title), _text(message, spacing="Small")])


def build_info_card(title: str, message: Optional[str] = None) -> Card:
    body = [_heading(title)]
    if message:
        body.append(_text(message, spacing="Small"))
    return _card(body)


def build_error_card(message: str = "Something went wrong while processing your request. Please try again.") -> Card:
    return build_info_card("Something went wrong", message)


def build_new_document_card(doc: DocumentSnapshot) -> Card:
    """Proactive "new document to approve" notification."""
    meta_parts = [p.strip() for p in (doc.document_class, doc.document_no, doc.document_revision) if p and p.strip()]

    body = [
        _heading("New document to approve"),
        _text(doc.display_title, weight="Bolder", spacing="Small"),
    ]
    if meta_parts:
        body.append(_text(" - ".join(meta_parts), spacing="None", isSubtle=True))
    if doc.doc_type:
        body.append(_text(f"Type: {doc.doc_type}", spacing="None", isSubtle=True))
    if doc.original_file_name:
        body.append(_text(f"File: {doc.original_file_name}", spacing="Small", isSubtle=True))

    return _card(
        body,
        [
            _submit("View pending list", ACTION_SHOW_PENDING),
            _submit("Close", ACTION_DISMISS),
        ],
    )


def build_user_change_card(summary: str, user_display_name: Optional[str] = None, title: str = "Change for user") -> Card:
    user = (user_display_name or "").strip() or "Unknown user"
    return _card(
        [
            _heading(title),
            _text(summary),
            {"type": "FactSet", "facts": [{"title": "User", "value": user}]},
            {"type": "TextBlock", "text": "Choose an action:", "weight": "Bolder", "spacing": "Medium"},
        ],
        [
            _submit("Acknowledge", ACTION_ACK_CHANGE),
            _submit("Request details", ACTION_CHANGE_DETAILS),
        ],
    )


def build_document_info_card(file_name: str, result: DocumentTypeResult) -> Card:
    """Classification of an uploaded file by its name."""
    body = [
        _heading("Document detected"),
        kv("File", file_name),
        kv("Type", result.type),
    ]

    parsed = result.metadata
    if parsed is not None and parsed.is_structured_format:
        body.append({"type": "TextBlock", "text": "IFS metadata", "weight": "Bolder", "spacing": "Medium"})
        body.append(kv("Title", parsed.title or "Untitled"))
        body.append(kv("Class", parsed.doc_class or "-"))
        body.append(kv("Doc No", parsed.doc_number or "-"))
        body.append(kv("Sheet", parsed.doc_sheet or "-"))
        body.append(kv("Rev", parsed.doc_revision or "-"))
    else:
        body.append(_text("This filename doesn't match the IFS naming format.", spacing="Medium"))

    return _card(
        body,
        [
            _submit("Confirm", ACTION_CONFIRM_DOCUMENT, fileName=file_name, docType=result.type),
            _submit("Not correct", ACTION_REJECT_DOCUMENT, fileName=file_name, docType=result.type),
        ],
    )


def build_pending_approvals_card(docs: List[DocumentRecord], user_label: Optional[str] = None) -> Card:
    """Greeting card with the number of pending documents."""
    count = len(docs)
    body = []
    user = (user_label or "").strip()
    if user:
        body.append(_text(f"Hi {user}", spacing="None"))
    body.append(_heading("Documents pending approval"))
    body.append(_text(f"Pending: {count}", spacing="Small"))

    if count == 0:
        body.append(_text("No documents pending approval.", spacing="Medium"))
        actions = [_submit("OK", ACTION_DISMISS)]
    else:
        body.append(_text("Do you want to see the list?", spacing="Medium"))
        actions = [_submit("Yes", ACTION_SHOW_PENDING), _submit("No", ACTION_DISMISS)]
    return _card(body, actions)


def _list_item(doc: DocumentRecord) -> Dict[str, Any]:
    items = [_text(doc.display_title, weight="Bolder")]
    if doc.doc_type:
        items.append(_text(f"Type: {doc.doc_type}", isSubtle=True, spacing="None"))
    if doc.metadata_label:
        items.append(_text(doc.metadata_label, isSubtle=True, spacing="None"))
    if doc.responsible_person:
        items.append(_text(f"Responsible: {doc.responsible_person}", isSubtle=True, spacing="None"))
    return {
        "type": "Container",
        "style": "emphasis",
        "spacing": "Small",
        "items": items,
        "selectAction": _submit("Select", ACTION_SELECT_DOC, docId=doc.id),
    }


def build_pending_list_card(docs: List[DocumentRecord]) -> Card:
    if docs:
        items = [_list_item(d) for d in docs[:MAX_LIST_ITEMS]]
    else:
        items = [_text("No documents pending approval.")]

    return _card(
        [
            _heading("Pending approvals"),
            _text("Select a document to view details.", spacing="Small"),
            {"type": "Container", "items": items, "spacing": "Medium"},
        ],
        [
            _submit("Refresh", ACTION_SHOW_PENDING),
            _submit("Close", ACTION_DISMISS),
        ],
    )


def build_document_details_card(doc: DocumentRecord) -> Card:
    body = [
        _heading("Document details"),
        kv("ID", doc.id),
        kv("Title", doc.title or "-"),
        kv("Original file", doc.original_file_name or "-"),
    ]
    if doc.metadata_label:
        body.append(kv("Metadata", doc.metadata_label))
    for label, value in (
        ("Doc status", doc.document_status),
        ("File status", doc.file_status),
        ("Language", doc.language),
        ("Responsible", doc.responsible_person),
        ("Modified", doc.modified),
    ):
        if value:
            body.append(kv(label, value))

    return _card(
        body,
        [
            _submit("Approve", ACTION_APPROVE, docId=doc.id),
            _submit("Reject", ACTION_REJECT, docId=doc.id),
            _submit("Back to list", ACTION_SHOW_PENDING),
        ],
    )


def build_summary_card(doc: DocumentRecord, summary: str) -> Card:
    """LLM summary of a document plus a question box."""
    body = [
        _heading("Document summary"),
        kv("ID", doc.id),
        kv("Title", doc.title or "-"),
        *_document_facts(doc),
    ]
    if doc.metadata_label:
        body.append(kv("Metadata", doc.metadata_label))
    body.extend(
        [
            _text(summary or "(No summary)", spacing="Medium"),
            {"type": "TextBlock", "text": "Ask a question about this document:", "weight": "Bolder", "spacing": "Medium"},
            {
                "type": "Input.Text",
                "id": "question",
                "isMultiline": True,
                "placeholder": "e.g. What are the approval requirements?",
            },
        ]
    )
    return _card(body, _document_actions(doc.id))


def build_answer_card(doc: DocumentRecord, question: str, answer: str) -> Card:
    body = [
        _heading("Answer from document"),
        kv("Document", doc.title or doc.id),
        *_document_facts(doc),
        _text(f"Q: {question}", weight="Bolder", spacing="Medium"),
        _text(answer or "(No answer)", spacing="Small"),
        {"type": "TextBlock", "text": "Ask another question:", "weight": "Bolder", "spacing": "Medium"},
        {
            "type": "Input.Text",
            "id": "question",
            "isMultiline": True,
            "placeholder": "Type your next question…",
        },
    ]
    return _card(body, _document_actions(doc.id))
