"""Schemas for the quote approval workflow."""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field

from quoterecon.schemas.common import CamelModel, MatchResult


class ApprovalDecision(str, enum.Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    REQUEST_REVISION = "request_revision"


class QuoteStatus(str, enum.Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class CatalogStatus(str, enum.Enum):
    SELECTED = "SELECTED"
    QUOTE_APPROVED = "QUOTE_APPROVED"


class AuditType(str, enum.Enum):
    PRICE_UPDATED = "PRICE_UPDATED"
    QUOTE_DECLINED = "QUOTE_DECLINED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class QuoteLineItem(CamelModel):
    """A quote line as stored for manually entered quotes."""
    id: str
    requested_item_id: Optional[str] = Field(None, description="Linked RFQ line item id")
    catalog_item_id: Optional[str] = None
    item_name: Optional[str] = None
    quantity: int = 1
    unit_price: Optional[float] = None
    currency: Optional[str] = None
    lead_time: Optional[str] = None


# ---------------------------------------------------------------------------
# Input variants, normalised to PricingRow before resolution
# ---------------------------------------------------------------------------

class MatchResultSource(CamelModel):
    kind: Literal["match_results"] = "match_results"
    results: list[MatchResult]


class LineItemSource(CamelModel):
    kind: Literal["line_items"] = "line_items"
    line_items: list[QuoteLineItem]


ApprovalSource = Annotated[Union[MatchResultSource, LineItemSource], Field(discriminator="kind")]


class PricingRow(CamelModel):
    """Uniform row shape the resolver works on."""
    row_id: str
    requested_item_id: Optional[str] = None
    catalog_item_id: Optional[str] = None
    item_name: Optional[str] = None
    unit_price: Optional[float] = None
    quantity: int = 1
    lead_time: Optional[str] = None
    currency: Optional[str] = None


class ApprovalContext(CamelModel):
    """Who approves what, and the catalog state needed for the audit trail."""
    quote_id: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    supplier_markup_percent: Optional[float] = None
    actor_id: Optional[str] = None
    actor_name: str = "Team Member"
    currency: Optional[str] = None
    previous_trade_prices: dict[str, float] = Field(default_factory=dict)
    catalog_links: dict[str, str] = Field(
        default_factory=dict, description="Requested item id -> catalog item id"
    )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class AuditEntry(CamelModel):
    catalog_item_id: Optional[str] = None
    type: AuditType
    title: str
    description: str
    actor_id: Optional[str] = None
    actor_name: str = "Team Member"
    metadata: dict[str, Any] = Field(default_factory=dict)


class CatalogMutation(CamelModel):
    """Update to one catalog record; `audit` must be written with it."""
    catalog_item_id: str
    status: CatalogStatus
    trade_price: Optional[float] = None
    retail_price: Optional[float] = None
    currency: Optional[str] = None
    lead_time: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    audit: AuditEntry


class SkippedRow(CamelModel):
    item_id: str
    reason: str


class ApprovalResult(CamelModel):
    decision: ApprovalDecision
    quote_status: QuoteStatus
    markup_percent: Optional[float] = None
    mutations: list[CatalogMutation] = Field(default_factory=list)
    skipped: list[SkippedRow] = Field(default_factory=list)
    audit_entries: list[AuditEntry] = Field(default_factory=list)


class DecisionRequest(CamelModel):
    """Body of POST /v1/quotes/{quote_id}/decision."""
    action: str = Field(..., description="approve, decline or request_revision")
    context: ApprovalContext = Field(default_factory=ApprovalContext)
    markup_percent: Optional[float] = None
    line_items: list[QuoteLineItem] = Field(
        default_factory=list, description="Used when the quote has no stored match report"
    )
