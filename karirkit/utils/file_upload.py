"""
Document text extraction for knowledge-base ingestion.

Salary surveys and market reports arrive as PDF (PyPDF2), Word (python-docx)
or plain text / Markdown. Uploads are limited to MAX_UPLOAD_SIZE_MB.
"""

import io
import logging
from typing import Callable, Dict, Tuple

from docx import Document
from fastapi import UploadFile
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from karirkit.core.config import get_settings
from karirkit.core.errors import KarirKitError, ValidationFailed

logger = logging.getLogger(__name__)

TEXT_ENCODINGS = ("utf-8", "cp1252", "latin-1")


def get_file_extension(filename: str) -> str:
    """Lowercase extension with its dot, "" when there is none."""
    _, dot, ext = filename.rpartition(".")
    return f".{ext.lower()}" if dot else ""


def pdf_to_text(content: bytes) -> str:
    """Pages separated by a blank line."""
    try:
        pages = PdfReader(io.BytesIO(content)).pages
        return "\n\n".join(filter(None, (page.extract_text() for page in pages)))
    except (PdfReadError, ValueError, OSError) as e:
        raise ValidationFailed(f"Error reading PDF: {e}") from e


def docx_to_text(content: bytes) -> str:
    """Paragraphs, then table rows as "cell | cell"."""
    try:
        doc = Document(io.BytesIO(content))
    except Exception as e:
        # python-docx surfaces zip/xml errors of many kinds
        raise ValidationFailed(f"Error reading DOCX: {e}") from e

    lines = [p.text for p in doc.paragraphs if p.text.strip()]

    # Salary tables are common in survey documents
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))

    return "\n".join(lines)


def plain_to_text(content: bytes) -> str:
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValidationFailed("Could not decode text file")


EXTRACTORS: Dict[str, Callable[[bytes], str]] = {
    ".pdf": pdf_to_text,
    ".docx": docx_to_text,
    ".txt": plain_to_text,
    ".md": plain_to_text,
}


def extract_text(content: bytes, filename: str) -> str:
    """
    Text of a document, chosen by file extension.

    Raises:
        ValidationFailed (400) for unsupported, unreadable or empty files
        KarirKitError (413) when the file exceeds the upload limit
    """
    ext = get_file_extension(filename)
    extractor = EXTRACTORS.get(ext)
    if extractor is None:
        raise ValidationFailed(f"Unsupported file type '{ext}'. Allowed: PDF, DOCX, TXT, MD")

    max_mb = get_settings().max_upload_size_mb
    if len(content) > max_mb * 1024 * 1024:
        raise KarirKitError(f"File too large. Maximum size: {max_mb}MB", status_code=413)

    text = extractor(content)
    if not text.strip():
        raise ValidationFailed("Could not extract text from file. File may be empty or corrupted.")

    logger.info("Extracted %d characters from %s", len(text), filename)
    return text


async def extract_text_from_file(file: UploadFile) -> Tuple[str, str]:
    """
    Read an upload and extract its text.

    Returns:
        (text, filename)
    """
    if not file.filename:
        raise ValidationFailed("No filename provided")
    return extract_text(await file.read(), file.filename), file.filename


def get_supported_formats() -> dict:
    return {
        "supported_formats": [
            {"extension": ".pdf", "name": "PDF"},
            {"extension": ".docx", "name": "Word Document"},
            {"extension": ".txt", "name": "Plain Text"},
            {"extension": ".md", "name": "Markdown"}
        ],
        "max_size_mb": get_settings().max_upload_size_mb
    }
