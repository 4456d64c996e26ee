"""Schemas for file upload endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class FileUploadResponse(BaseModel):
    """Response returned after a successful quote document upload."""
    file_id: str = Field(..., description="UUID of the uploaded quote document")
    filename: str = Field(..., description="Original filename")
    content_type: str = Field(..., description="MIME type of the document")
    page_count: Optional[int] = Field(None, description="Total pages (PDF only)")
    size_bytes: int = Field(..., description="File size in bytes")
