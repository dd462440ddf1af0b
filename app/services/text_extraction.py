"""Text and image extraction for approval documents.

Supports plain text, PDF (pypdf), DOCX/PPTX (Office Open XML read directly
from the zip container) and XLSX (openpyxl). Extraction raises on unreadable
input; callers decide how to degrade.
"""

from __future__ import annotations

import base64
import re
import zipfile
from pathlib import Path
from typing import List
from xml.etree import ElementTree as ET

from openpyxl import load_workbook
from pypdf import PdfReader


MAX_TEXT_CHARS = 12000
MAX_SHEETS = 5
MAX_IMAGES = 4

IMAGE_MIME_BY_SUFFIX = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}


class UnsupportedDocumentError(ValueError):
    """Raised for file types the extractor does not understand."""


def clamp_text(text: str, max_chars: int = MAX_TEXT_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n\n[TRUNCATED]"


def _xml_paragraphs(xml_bytes: bytes, paragraph_suffix: str) -> List[str]:
    root = ET.fromstring(xml_bytes)
    lines: List[str] = []
    for node in root.iter():
        if not str(node.tag).endswith(paragraph_suffix):
            continue
        parts = [t.text for t in node.iter() if str(t.tag).endswith("}t") and t.text]
        line = "".join(parts).strip()
        if line:
            lines.append(line)
    return lines


def _extract_docx(path: Path) -> str:
    with zipfile.ZipFile(path) as archive:
        names = set(archive.namelist())
        parts = []
        for name in ("word/document.xml", "word/footnotes.xml", "word/endnotes.xml", "word/comments.xml"):
            if name in names:
                parts.extend(_xml_paragraphs(archive.read(name), "}p"))
    return "\n".join(parts)


def _slide_number(name: str) -> int:
    match = re.search(r"slide(\d+)\.xml$", name)
    return int(match.group(1)) if match else 0


def _extract_pptx(path: Path) -> str:
    with zipfile.ZipFile(path) as archive:
        slide_names = sorted(
            (n for n in archive.namelist() if n.startswith("ppt/slides/slide") and n.endswith(".xml")),
            key=_slide_number,
        )
        slides = []
        for index, name in enumerate(slide_names, start=1):
            text = "\n".join(_xml_paragraphs(archive.read(name), "}p"))
            if text:
                slides.append(f"Slide {index}:\n{text}")
    return "\n\n".join(slides)


def _extract_pdf(path: Path) -> str:
    reader = PdfReader(str(path))
    return "\n".join((page.extract_text() or "") for page in reader.pages)


def _extract_xlsx(path: Path) -> str:
    workbook = load_workbook(filename=str(path), read_only=True, data_only=True)
    try:
        out = []
        for sheet in workbook.worksheets[:MAX_SHEETS]:
            rows = []
            for row in sheet.iter_rows(values_only=True):
                rows.append("\t".join("" if v is None else str(v) for v in row))
            out.append(f"Sheet: {sheet.title}\n" + "\n".join(rows))
        return "\n\n".join(out)
    finally:
        workbook.close()


def extract_text(path: Path) -> str:
    """Extract readable text from ``path``.

    Raises:
        FileNotFoundError: If the file does not exist.
        UnsupportedDocumentError: For unknown or binary formats.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(str(path))

    suffix = path.suffix.lower()
    if suffix in (".txt", ".md"):
        return clamp_text(path.read_text(encoding="utf-8"))
    if suffix == ".pdf":
        return clamp_text(_extract_pdf(path))
    if suffix == ".docx":
        return clamp_text(_extract_docx(path))
    if suffix == ".pptx":
        return clamp_text(_extract_pptx(path))
    if suffix in (".xlsx", ".xlsm"):
        return clamp_text(_extract_xlsx(path))
    raise UnsupportedDocumentError(f"No text extractor for '{suffix or path.name}'")


def extract_images(path: Path, limit: int = MAX_IMAGES) -> List[str]:
    """Return embedded DOCX images as ``data:`` URLs (other types yield nothing)."""
    path = Path(path)
    if path.suffix.lower() != ".docx":
        return []
    if not path.is_file():
        raise FileNotFoundError(str(path))

    images: List[str] = []
    with zipfile.ZipFile(path) as archive:
        for name in sorted(archive.namelist()):
            if not name.startswith("word/media/"):
                continue
            mime = IMAGE_MIME_BY_SUFFIX.get(Path(name).suffix.lower())
            if mime is None:
                continue
            encoded = base64.b64encode(archive.read(name)).decode("ascii")
            images.append(f"data:{mime};base64,{encoded}")
            if len(images) >= limit:
                break
    return images
