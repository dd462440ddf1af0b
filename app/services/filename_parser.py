"""
Filename metadata parser for structured document titles.

Recovers the structured identity fields embedded in document file names that
follow the ``CLASS - NUMBER - SHEET - REV`` convention, e.g.::

    "Design Spec (01-TEST - 1028340 - 1 - A1) - 1.docx"
    "Title (extra text)(01-TEST - 1028340 - 1 - A1) - 1.docx"
    "Copy of Pump Layout [P-CLS - 42 - 2 - b] - 3.pdf"

- CLASS: letters/digits with hyphens or underscores ("01-TEST", "ISU_YES_N")
- NUMBER: digits
- SHEET: digits
- REV: alphanumeric, always upper-cased in the result

The parser is pure and never raises for string input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


COPY_PREFIX_RE = re.compile(r"^copy of\s+", re.IGNORECASE)
VERSION_SUFFIX_RE = re.compile(r"\s*-\s*\d+\s*$")
PAREN_GROUP_RE = re.compile(r"\(([^)]+)\)")
BRACKET_GROUP_RE = re.compile(r"\[([^\]]+)\]")
ANY_GROUP_RE = re.compile(r"\(.+?\)|\[.+?\]")
TRAILING_GROUP_RESIDUE_RE = re.compile(r"[\s()\[\]]+$")
GROUP_TOKEN_SPLIT_RE = re.compile(r"[-_\s]+")
METADATA_SEPARATOR_RE = re.compile(r"\s+-\s+")
INLINE_METADATA_RE = re.compile(
    r"([A-Z0-9-]+)\s*[-_]\s*(\d+)\s*[-_]\s*(\d+)\s*[-_]\s*([A-Z0-9]+)",
    re.IGNORECASE,
)

DIGITS_RE = re.compile(r"^\d+$")
REVISION_RE = re.compile(r"^[A-Za-z0-9]+$")


@dataclass(frozen=True)
class ParsedFilename:
    """Identity fields recovered from a document file name."""

    title: str
    doc_class: str = ""
    doc_number: str = ""
    doc_sheet: str = ""
    doc_revision: str = ""
    file_extension: str = ""
    is_structured_format: bool = False
    is_copy_marker: bool = False

    @property
    def metadata_label(self) -> str:
        """``CLASS - NUMBER - SHEET - REV`` or an empty string when unstructured."""
        if not self.is_structured_format:
            return ""
        return f"{self.doc_class} - {self.doc_number} - {self.doc_sheet} - {self.doc_revision}"


def _is_metadata_group(content: str) -> bool:
    """Check whether a bracket group looks like ``CLASS - NUMBER - SHEET - REV``."""
    tokens = [t.strip() for t in GROUP_TOKEN_SPLIT_RE.split(content) if t.strip()]
    if len(tokens) < 4:
        return False

    doc_number, doc_sheet, doc_revision = tokens[-3], tokens[-2], tokens[-1]
    return bool(
        DIGITS_RE.match(doc_number)
        and DIGITS_RE.match(doc_sheet)
        and REVISION_RE.match(doc_revision)
    )


def _unstructured(title: str, extension: str, is_copy: bool) -> ParsedFilename:
    return ParsedFilename(
        title=title,
        file_extension=extension.upper(),
        is_structured_format=False,
        is_copy_marker=is_copy,
    )


def parse_document_filename(filename: Optional[str]) -> Optional[ParsedFilename]:
    """Parse a document file name into structured identity fields.

    Args:
        filename: File name or document title, e.g.
            ``"Title (01-TEST - 1028340 - 1 - A1) - 1.docx"``.

    Returns:
        ParsedFilename, or None when ``filename`` is not a non-empty string.
    """
    if not filename or not isinstance(filename, str):
        return None

    is_copy = bool(COPY_PREFIX_RE.match(filename))
    clean_name = COPY_PREFIX_RE.sub("", filename).strip()

    dot = clean_name.rfind(".")
    extension = clean_name[dot:] if dot >= 0 else ""
    name_without_ext = clean_name[:dot] if dot >= 0 else clean_name

    without_version = VERSION_SUFFIX_RE.sub("", name_without_ext)

    # Groups in document order, evaluated right to left so the block nearest
    # the version suffix wins over earlier parenthetical asides.
    groups = sorted(
        [*PAREN_GROUP_RE.finditer(without_version), *BRACKET_GROUP_RE.finditer(without_version)],
        key=lambda m: m.start(),
    )
    metadata_match = next((m for m in reversed(groups) if _is_metadata_group(m.group(1))), None)

    if metadata_match is None:
        inline = INLINE_METADATA_RE.search(without_version)
        if inline is None:
            return _unstructured(name_without_ext, extension, is_copy)

        doc_class, doc_number, doc_sheet, doc_revision = inline.groups()
        title = without_version[: inline.start()].strip()
        return ParsedFilename(
            title=title or name_without_ext,
            doc_class=doc_class.strip(),
            doc_number=doc_number.strip(),
            doc_sheet=doc_sheet.strip(),
            doc_revision=doc_revision.strip().upper(),
            file_extension=extension.upper(),
            is_structured_format=True,
            is_copy_marker=is_copy,
        )

    title = without_version[: metadata_match.start()].strip()
    title = ANY_GROUP_RE.sub("", title).strip()
    title = TRAILING_GROUP_RESIDUE_RE.sub("", title).strip()

    tokens = [t.strip() for t in METADATA_SEPARATOR_RE.split(metadata_match.group(1)) if t.strip()]
    if len(tokens) < 4:
        return _unstructured(name_without_ext, extension, is_copy)

    doc_revision = tokens.pop()
    doc_sheet = tokens.pop()
    doc_number = tokens.pop()
    doc_class = " - ".join(tokens).strip()

    # "A - B_12 - 3 - X" passes the loose group check but not the strict split
    if not (DIGITS_RE.match(doc_number) and DIGITS_RE.match(doc_sheet) and REVISION_RE.match(doc_revision)):
        return _unstructured(name_without_ext, extension, is_copy)

    return ParsedFilename(
        title=title or "Untitled",
        doc_class=doc_class,
        doc_number=doc_number,
        doc_sheet=doc_sheet,
        doc_revision=doc_revision.upper(),
        file_extension=extension.upper(),
        is_structured_format=True,
        is_copy_marker=is_copy,
    )


def format_document_name(parsed: Optional[ParsedFilename]) -> str:
    """Format parsed fields back into the structured file name convention."""
    if parsed is None:
        return ""
    base = (
        f"{parsed.title} ({parsed.doc_class} - {parsed.doc_number} - "
        f"{parsed.doc_sheet} - {parsed.doc_revision}) - 1"
    )
    return f"{base}{parsed.file_extension}"
