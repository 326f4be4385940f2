from io import BytesIO
from unittest.mock import patch

import fitz
import pytest
from docx import Document

from core.config import settings
from core.exceptions import ExtractionFailed, UnsupportedFileType
from utils.extractor import extract_text


def test_txt_is_decoded_as_utf8():
    assert extract_text("1. ಪ್ರಶ್ನೆ".encode("utf-8"), "paper.TXT") == "1. ಪ್ರಶ್ನೆ"


def test_docx_paragraphs_and_tables():
    document = Document()
    document.add_paragraph("1. What is 2+2?")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "a) 3"
    table.rows[0].cells[1].text = "b) 4"
    buffer = BytesIO()
    document.save(buffer)

    text = extract_text(buffer.getvalue(), "paper.docx")

    assert "1. What is 2+2?" in text
    assert "a) 3 | b) 4" in text


def test_docx_renamed_to_doc():
    document = Document()
    document.add_paragraph("1. Renamed file")
    buffer = BytesIO()
    document.save(buffer)

    assert "1. Renamed file" in extract_text(buffer.getvalue(), "legacy.doc")


def test_rtf_renamed_to_doc():
    rtf = rb"{\rtf1\ansi 1. Hello RTF\par}"
    assert "Hello RTF" in extract_text(rtf, "legacy.doc")


def test_pdf_text():
    document = fitz.open()
    page = document.new_page()
    page.insert_text((72, 72), "1. What is the capital of France?")
    data = document.tobytes()
    document.close()

    assert "capital of France" in extract_text(data, "paper.pdf")


def test_unsupported_extension():
    with pytest.raises(UnsupportedFileType) as exc:
        extract_text(b"data", "slides.pptx")
    assert ".pptx" in str(exc.value)


def test_corrupt_pdf_raises_extraction_failed():
    with pytest.raises(ExtractionFailed):
        extract_text(b"not a pdf", "broken.pdf")


def test_file_size_limit():
    with patch.object(settings, "FILE_SIZE_LIMIT_MB", 0):
        with pytest.raises(ExtractionFailed):
            extract_text(b"1. tiny", "paper.txt")
