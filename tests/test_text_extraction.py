"""Tests for document text and image extraction."""

import zipfile

import pytest
from openpyxl import Workbook

from app.services.text_extraction import (
    MAX_TEXT_CHARS,
    UnsupportedDocumentError,
    clamp_text,
    extract_images,
    extract_text,
)


W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"


def write_docx(path, paragraphs, images=()):
    body = "".join(f"<w:p><w:r><w:t>{p}</w:t></w:r></w:p>" for p in paragraphs)
    xml = f'<w:document xmlns:w="{W_NS}"><w:body>{body}</w:body></w:document>'
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("word/document.xml", xml)
        for name, data in images:
            archive.writestr(f"word/media/{name}", data)


def write_pptx(path, slides):
    with zipfile.ZipFile(path, "w") as archive:
        for index, text in enumerate(slides, start=1):
            xml = f'<p:sld xmlns:p="p" xmlns:a="{A_NS}"><a:p><a:r><a:t>{text}</a:t></a:r></a:p></p:sld>'
            archive.writestr(f"ppt/slides/slide{index}.xml", xml)


class TestExtractText:
    """Per-format text extraction."""

    def test_plain_text(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("line one\nline two", encoding="utf-8")

        assert extract_text(path) == "line one\nline two"

    def test_long_plain_text_is_clamped(self, tmp_path):
        path = tmp_path / "long.md"
        path.write_text("x" * (MAX_TEXT_CHARS + 50), encoding="utf-8")

        text = extract_text(path)

        assert text == "x" * MAX_TEXT_CHARS + "\n\n[TRUNCATED]"

    def test_docx_paragraphs(self, tmp_path):
        path = tmp_path / "spec.docx"
        write_docx(path, ["Scope", "Pump pressure 10 bar"])

        assert extract_text(path) == "Scope\nPump pressure 10 bar"

    def test_pptx_slides_in_order(self, tmp_path):
        path = tmp_path / "deck.pptx"
        write_pptx(path, ["Intro", "Details"])

        assert extract_text(path) == "Slide 1:\nIntro\n\nSlide 2:\nDetails"

    def test_xlsx_rows(self, tmp_path):
        path = tmp_path / "sheet.xlsx"
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Parts"
        sheet.append(["Part", "Qty"])
        sheet.append(["Valve", 4])
        workbook.save(path)

        text = extract_text(path)

        assert text.startswith("Sheet: Parts")
        assert "Part\tQty" in text
        assert "Valve\t4" in text

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            extract_text(tmp_path / "nope.pdf")

    def test_unsupported_type(self, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"\x89PNG")

        with pytest.raises(UnsupportedDocumentError):
            extract_text(path)


class TestHelpers:
    def test_clamp_text(self):
        assert clamp_text("abc", 5) == "abc"
        assert clamp_text("abcdef", 3) == "abc\n\n[TRUNCATED]"

    def test_docx_images_as_data_urls(self, tmp_path):
        path = tmp_path / "figures.docx"
        write_docx(path, ["x"], images=[("image1.png", b"png-bytes"), ("notes.txt", b"skip")])

        images = extract_images(path)

        assert len(images) == 1
        assert images[0].startswith("data:image/png;base64,")

    def test_images_only_for_docx(self, tmp_path):
        assert extract_images(tmp_path / "a.pdf") == []
