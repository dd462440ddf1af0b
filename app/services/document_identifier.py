"""Identify the source system of an uploaded document from its file name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.services.filename_parser import ParsedFilename, parse_document_filename


STRUCTURED_SOURCE = "IFS"


@dataclass(frozen=True)
class DocumentTypeResult:
    """Outcome of classifying an uploaded file by its name."""

    type: str
    message: str
    is_identified: bool
    metadata: Optional[ParsedFilename] = None


def identify_document_type(document_title: Optional[str]) -> DocumentTypeResult:
    """Classify a file name as a structured (IFS) document or not.

    Args:
        document_title: File name or title, e.g.
            ``"Title (01-TEST - 1028340 - 1 - A1) - 1.docx"``.
    """
    if not document_title or not isinstance(document_title, str):
        return DocumentTypeResult(
            type="Unknown",
            message="I couldn't determine the document type.",
            is_identified=False,
        )

    parsed = parse_document_filename(document_title)
    if parsed is not None and parsed.is_structured_format:
        message = (
            f"This document is from **{STRUCTURED_SOURCE}** (IFS Applications).\n\n"
            f"**Title:** {parsed.title}\n\n"
            f"**Metadata:** {parsed.metadata_label}\n\n"
            f"*(Class: {parsed.doc_class}, Doc No: {parsed.doc_number}, "
            f"Sheet: {parsed.doc_sheet}, Rev: {parsed.doc_revision})*"
        )
        return DocumentTypeResult(
            type=STRUCTURED_SOURCE,
            message=message,
            is_identified=True,
            metadata=parsed,
        )

    return DocumentTypeResult(
        type="NotIFS",
        message=f"This document is not from {STRUCTURED_SOURCE}.",
        is_identified=False,
        metadata=parsed,
    )
