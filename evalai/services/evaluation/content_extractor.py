from __future__ import annotations

import base64
import io
import logging

import fitz  # PyMuPDF
from docx import Document

from evalai.core.config import DOCX_MEDIA_TYPE, PDF_MEDIA_TYPE, settings
from evalai.core.exceptions import ExtractionFailure, UnsupportedMediaType
from evalai.models.content import ExtractedContent, InlineBinaryContent, SubmissionFile, TextContent

logger = logging.getLogger(__name__)


def is_supported_media_type(media_type: str | None) -> bool:
    if not media_type:
        return False
    return media_type.startswith("image/") or media_type in (PDF_MEDIA_TYPE, DOCX_MEDIA_TYPE)


def bounded_data_uri(data: bytes, media_type: str, limit: int) -> str | None:
    """Return the ``data:`` URI for storage, or None if it exceeds ``limit`` bytes."""
    uri = f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"
    if len(uri.encode("utf-8")) > limit:
        return None
    return uri


def extract_pdf_text(data: bytes) -> str:
    # No OCR: image-only pages contribute an empty string
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return "".join(page.get_text() for page in doc)
    except Exception as e:  # noqa: BLE001
        raise ExtractionFailure("Failed to read PDF", {"error": str(e)}) from e


def extract_docx_text(data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:  # noqa: BLE001
        raise ExtractionFailure("Failed to read DOCX", {"error": str(e)}) from e

    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines)


def extract(file: SubmissionFile, store_limit: int | None = None) -> ExtractedContent:
    """Turn an uploaded file into text or an inline image payload.

    - image/*: bytes untouched; bounded base64 copy kept for storage
    - PDF: embedded text, page by page
    - DOCX: raw text, formatting dropped
    """
    media_type = file.media_type
    if not is_supported_media_type(media_type):
        raise UnsupportedMediaType(media_type)

    if media_type.startswith("image/"):
        limit = settings.STORE_FIELD_BYTE_LIMIT if store_limit is None else store_limit
        stored = bounded_data_uri(file.data, media_type, limit)
        if stored is None:
            logger.info(
                f"Image {file.filename or '<upload>'} is too large to store "
                f"(limit {limit} bytes). Evaluation will proceed without saving the image."
            )
        return InlineBinaryContent(data=file.data, media_type=media_type, stored_copy=stored)

    if media_type == PDF_MEDIA_TYPE:
        text = extract_pdf_text(file.data)
    else:
        text = extract_docx_text(file.data)

    if not text.strip():
        logger.warning(f"No embedded text found in {file.filename or '<upload>'} ({media_type})")
    return TextContent(value=text)
