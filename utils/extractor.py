import os
import subprocess
import tempfile
from io import BytesIO

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from constants.messages import Messages
from core.config import settings
from core.exceptions import ExtractionFailed, UnsupportedFileType
from core.logger import logger

def extract_text_from_pdf(pdf_bytes: bytes) -> str:
    """Extract text from PDF using PyMuPDF."""
    text = ""
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        for page in doc:
            text += page.get_text()
    return text


def extract_text_from_docx(docx_bytes: bytes) -> str:
    """Extract text from Word document including tables using python-docx."""
    doc = DocxDocument(BytesIO(docx_bytes))
    lines = []

    # 1. Paragraphs
    for para in doc.paragraphs:
        if para.text.strip():
            lines.append(para.text)

    # 2. Tables
    for table in doc.tables:
        for row in table.rows:
            row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if row_text:
                lines.append(" | ".join(row_text))

    return "\n".join(lines)


def extract_text_from_doc(doc_bytes: bytes) -> str:
    """Robustly extract a legacy .doc, or an RTF/DOCX file renamed to .doc."""
    header = doc_bytes[:1024]

    # 1. RTF
    if header.startswith(b'{\\rtf'):
        from striprtf.striprtf import rtf_to_text
        return rtf_to_text(doc_bytes.decode('utf-8', errors='ignore'))

    # 2. DOCX (ZIP)
    if header.startswith(b'PK\x03\x04'):
        return extract_text_from_docx(doc_bytes)

    # 3. Legacy Word via antiword, falling back to catdoc
    with tempfile.NamedTemporaryFile(suffix=".doc", delete=False) as tmp:
        tmp.write(doc_bytes)
        local_path = tmp.name

    try:
        process = subprocess.run(
            ["antiword", local_path],
            capture_output=True,
            text=True,
            encoding='utf-8',
            errors='ignore'
        )
        if process.returncode == 0 and process.stdout.strip():
            return process.stdout

        process_cat = subprocess.run(
            ["catdoc", "-w", local_path],
            capture_output=True,
            text=True,
            encoding='utf-8',
            errors='ignore'
        )
        if process_cat.returncode != 0:
            raise ExtractionFailed(error=f"antiword and catdoc failed: {process_cat.stderr.strip()}")
        return process_cat.stdout
    finally:
        if os.path.exists(local_path):
            os.remove(local_path)


EXTRACTORS = {
    ".pdf": extract_text_from_pdf,
    ".docx": extract_text_from_docx,
    ".doc": extract_text_from_doc,
    ".txt": lambda data: data.decode("utf-8", errors="ignore"),
}


def extract_text(file_bytes: bytes, filename: str) -> str:
    """Return the plain text of an uploaded question paper or answer key.

    Raises ``UnsupportedFileType`` for unknown extensions and
    ``ExtractionFailed`` when the file cannot be read.
    """
    extension = os.path.splitext(filename or "")[1].lower()
    extractor = EXTRACTORS.get(extension)
    if extractor is None:
        raise UnsupportedFileType(extension=extension or filename)

    size_mb = len(file_bytes) / (1024 * 1024)
    if size_mb > settings.FILE_SIZE_LIMIT_MB:
        raise ExtractionFailed(Messages.get("FILE_TOO_LARGE").format(size_mb=size_mb, limit_mb=settings.FILE_SIZE_LIMIT_MB))

    try:
        text = extractor(file_bytes)
    except ExtractionFailed:
        raise
    except Exception as e:
        logger.error("Text extraction failed", filename=filename, error=str(e))
        raise ExtractionFailed(error=str(e)) from e

    logger.info("Text extracted", filename=filename, chars=len(text))
    return text
