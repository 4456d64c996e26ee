"""Schemas for quote extraction and analysis endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator

from quoterecon.schemas.common import CamelModel, ExtractedItem, RequestedItem, SupplierInfo


class QuoteExtraction(CamelModel):
    """Structured document returned by the extraction adapter."""
    supplier_info: SupplierInfo = Field(default_factory=SupplierInfo)
    extracted_items: list[ExtractedItem] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _null_sections(cls, data):
        # Models sometimes send explicit nulls for whole sections
        if isinstance(data, dict):
            data = dict(data)
            for key in ("supplierInfo", "supplier_info"):
                if key in data and data[key] is None:
                    data[key] = {}
            for key in ("extractedItems", "extracted_items"):
                if key in data and data[key] is None:
                    data[key] = []
        return data


class DocumentRef(CamelModel):
    """Reference to a quote document: an uploaded file or an image URL."""
    file_id: Optional[str] = Field(None, description="Id returned by POST /v1/files")
    url: Optional[str] = Field(None, description="Publicly reachable image URL")
    content_type: Optional[str] = Field(None, description="MIME type, e.g. application/pdf")

    @model_validator(mode="after")
    def _one_source(self):
        if not self.file_id and not self.url:
            raise ValueError("Either fileId or url is required")
        return self


class AnalyzeRequest(CamelModel):
    document: DocumentRef
    requested_items: list[RequestedItem]


class PageText(CamelModel):
    """Text content of a single PDF page."""
    page: int = Field(..., description="0-based page number")
    text: str = Field(..., description="Extracted text content")
