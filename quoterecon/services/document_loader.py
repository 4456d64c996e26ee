"""Quote document loading — turns a DocumentRef into chat message parts.

PDFs are read page by page with pypdf; when no page has a text layer
(scanned quotes) the first pages are rendered to images for the vision
model. Images are passed through as image parts.
"""

from __future__ import annotations

import base64
import io
import mimetypes
from pathlib import Path
from typing import Any

import structlog
from pypdf import PdfReader

from quoterecon.config import settings
from quoterecon.errors import UnreadableDocumentError
from quoterecon.schemas.extraction import DocumentRef, PageText
from quoterecon.storage import local as storage

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


# ---------------------------------------------------------------------------
# PDF text
# ---------------------------------------------------------------------------

def extract_text_by_page(pdf_path: str) -> list[PageText]:
    """Extract the text layer of each page of a PDF file."""
    reader = PdfReader(pdf_path)
    pages: list[PageText] = []

    for i, page in enumerate(reader.pages):
        try:
            text = page.extract_text() or ""
        except Exception as exc:
            logger.warning("page_text_extraction_failed", page=i, error=str(exc))
            text = ""
        pages.append(PageText(page=i, text=text))
        logger.debug("page_extracted", page=i, chars=len(text))

    logger.info("text_extraction_complete", total_pages=len(pages))
    return pages


def get_page_count(pdf_path: str) -> int:
    """Return the total number of pages in a PDF."""
    reader = PdfReader(pdf_path)
    return len(reader.pages)


def pages_to_prompt_text(pages: list[PageText]) -> str:
    """Join pages with markers, truncated to the configured size."""
    full_text = "\n\n".join(f"--- PAGE {p.page} ---\n{p.text}" for p in pages)
    if len(full_text) > settings.extraction_max_chars:
        full_text = full_text[: settings.extraction_max_chars] + "\n\n[... text truncated ...]"
    return full_text


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _image_part(url: str) -> dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": url, "detail": "high"}}


def _data_url(content: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


def render_pdf_pages(pdf_path: str) -> list[dict[str, Any]]:
    """Render the first pages of a scanned PDF to PNG image parts."""
    from pdf2image import convert_from_path

    try:
        images = convert_from_path(
            pdf_path,
            dpi=settings.pdf_render_dpi,
            first_page=1,
            last_page=settings.pdf_max_rendered_pages,
        )
    except Exception as exc:
        logger.warning("pdf_render_failed", path=pdf_path, error=str(exc))
        raise UnreadableDocumentError() from exc

    parts = []
    for image in images:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        parts.append(_image_part(_data_url(buffer.getvalue(), "image/png")))
    logger.info("pdf_pages_rendered", pages=len(parts))
    return parts


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _content_type(document: DocumentRef, path: Path | None = None) -> str:
    if document.content_type:
        return document.content_type
    guessed, _ = mimetypes.guess_type(str(path) if path else document.url or "")
    return guessed or "application/octet-stream"


def load_document_parts(document: DocumentRef) -> tuple[list[dict[str, Any]], bool]:
    """Build the user-message content parts for a quote document.

    Returns (parts, has_images). Raises FileNotFoundError for an unknown
    upload and UnreadableDocumentError for content the model cannot read.
    """
    if not document.file_id:
        content_type = _content_type(document)
        if content_type == PDF_CONTENT_TYPE:
            raise UnreadableDocumentError("PDF quotes must be uploaded before analysis")
        return [_image_part(document.url)], True

    path = storage.get_upload_path(document.file_id)
    content_type = _content_type(document, path)

    if content_type == PDF_CONTENT_TYPE:
        pages = extract_text_by_page(str(path))
        if any(p.text.strip() for p in pages):
            return [{"type": "text", "text": pages_to_prompt_text(pages)}], False
        logger.info("pdf_has_no_text_layer", file_id=document.file_id, pages=len(pages))
        return render_pdf_pages(str(path)), True

    if content_type.startswith("image/"):
        return [_image_part(_data_url(path.read_bytes(), content_type))], True

    raise UnreadableDocumentError(f"Unsupported document type: {content_type}")
