"""Schemas for reconciliation endpoints."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import Field

from quoterecon.schemas.common import (
    CamelModel,
    ExtractedItem,
    ExtraResolution,
    MatchResult,
    RequestedItem,
    SupplierInfo,
)


class MismatchType(str, enum.Enum):
    MISSING = "missing"
    EXTRA = "extra"
    QUANTITY = "quantity"
    PRICE = "price"
    ALTERNATE = "alternate"


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


class ReconciliationSummary(CamelModel):
    """Counts derived from a result set and its resolution overlay."""
    matched: int = 0
    partial: int = 0
    missing: int = 0
    extra: int = 0
    total_requested: int = 0
    resolved_extras: int = 0
    extracted_total: int = 0
    quantity_discrepancies: int = 0


class QuoteTotals(CamelModel):
    """Quote-level arithmetic checks."""
    calculated_total: float = 0.0
    quote_total: Optional[float] = None
    total_discrepancy: bool = False
    has_taxes: bool = False
    has_shipping_fee: bool = False
    shipping_fee: float = 0.0


class MatchReport(CamelModel):
    supplier_info: SupplierInfo = Field(default_factory=SupplierInfo)
    match_results: list[MatchResult]
    summary: ReconciliationSummary
    totals: QuoteTotals = Field(default_factory=QuoteTotals)
    notes: Optional[str] = None


class MatchRequest(CamelModel):
    """Input for a pure match run (no AI extraction)."""
    requested_items: list[RequestedItem]
    extracted_items: list[ExtractedItem]
    supplier_info: SupplierInfo = Field(default_factory=SupplierInfo)
    notes: Optional[str] = None


class ItemMismatch(CamelModel):
    """One entry of the project-level mismatch list."""
    item_name: str
    type: MismatchType
    severity: Severity
    reasons: list[str]
    result_id: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[float] = None
    total_price: Optional[float] = None
    brand: Optional[str] = None
    sku: Optional[str] = None


class MismatchListResponse(CamelModel):
    quote_id: str
    mismatches: list[ItemMismatch]
    total: int


class ResolveExtraRequest(ExtraResolution):
    """Body of POST /v1/quotes/{quote_id}/extras/resolve."""


class StoredReportResponse(CamelModel):
    quote_id: str
    report: MatchReport
    resolutions: list[ExtraResolution] = Field(default_factory=list)
