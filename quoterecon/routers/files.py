"""Router: POST /v1/files — upload a supplier quote document."""

from __future__ import annotations

import uuid
from pathlib import Path

import structlog
from fastapi import APIRouter, HTTPException, UploadFile, File

from quoterecon.schemas.files import FileUploadResponse
from quoterecon.services.document_loader import PDF_CONTENT_TYPE, get_page_count
from quoterecon.storage import local as storage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["files"])

ALLOWED_TYPES = {
    ".pdf": PDF_CONTENT_TYPE,
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


@router.post("/files", response_model=FileUploadResponse)
async def upload_file(file: UploadFile = File(...)):
    """Upload a supplier quote (PDF or image) for analysis.

    Returns the file_id (UUID), original filename, content type, page count
    (PDF only), and file size.
    """
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF and image files are accepted")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")

    file_id = str(uuid.uuid4())
    content_type = ALLOWED_TYPES[suffix]
    saved_path = storage.save_upload(file_id, content, suffix)

    page_count = None
    if content_type == PDF_CONTENT_TYPE:
        try:
            page_count = get_page_count(str(saved_path))
        except Exception as exc:
            logger.error("pdf_read_error", error=str(exc))
            saved_path.unlink(missing_ok=True)
            raise HTTPException(status_code=400, detail=f"Invalid PDF: {exc}")

    logger.info(
        "file_uploaded",
        file_id=file_id,
        filename=file.filename,
        content_type=content_type,
        size_bytes=len(content),
        page_count=page_count,
    )

    return FileUploadResponse(
        file_id=file_id,
        filename=file.filename,
        content_type=content_type,
        page_count=page_count,
        size_bytes=len(content),
    )
