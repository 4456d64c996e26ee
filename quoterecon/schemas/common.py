"""Shared schema types used across the application."""

from __future__ import annotations

import enum
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class MatchStatus(str, enum.Enum):
    MATCHED = "matched"
    PARTIAL = "partial"
    MISSING = "missing"
    EXTRA = "extra"


class ResolutionKind(str, enum.Enum):
    LINKED = "linked"
    COMPONENT = "component"
    ADDED_TO_SPECS = "added_to_specs"
    DISMISSED = "dismissed"


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# Base model: camelCase on the wire, snake_case in Python
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


_NUMBER_RE = re.compile(r"-?\d[\d.,]*")
_THOUSANDS_COMMA_RE = re.compile(r"^-?\d{1,3}(?:,\d{3})+$")


def _parse_number_token(token: str) -> float:
    """Parse "1,250.00", "1.250,00", "12,50" or "1,250" into a float.

    When both separators appear the last one is the decimal point. A lone
    comma is a thousands separator only in groups of three ("1,250").
    """
    token = token.rstrip(".,")
    if "," in token and "." in token:
        if token.rfind(",") > token.rfind("."):
            token = token.replace(".", "").replace(",", ".")
        else:
            token = token.replace(",", "")
    elif token.count(".") > 1:
        token = token.replace(".", "")
    elif "," in token:
        if _THOUSANDS_COMMA_RE.match(token):
            token = token.replace(",", "")
        else:
            token = token.replace(",", ".")
    return float(token)


def coerce_number(value: Any) -> Optional[float]:
    """Best-effort numeric coercion for model-extracted values.

    Accepts numbers and strings such as "$1,250.00", "1 250,00 $" or
    "2 pcs". Returns None for empty or unreadable values instead of failing
    the whole item.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        # Spaces (including non-breaking ones) group thousands in French quotes
        compact = re.sub(r"\s", "", value)
        found = _NUMBER_RE.search(compact)
        if found:
            try:
                return _parse_number_token(found.group())
            except ValueError:
                return None
    return None


# ---------------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------------

class RequestedItem(CamelModel):
    """A line of the buyer's request for quote."""
    id: str = Field(..., description="RFQ line item id")
    item_name: str = Field(..., description="Name of the requested product")
    quantity: int = Field(..., gt=0, description="Requested quantity")
    sku: Optional[str] = None
    brand: Optional[str] = None
    model_number: Optional[str] = None
    target_unit_price: Optional[float] = Field(None, ge=0.0)
    item_description: Optional[str] = None
    catalog_item_id: Optional[str] = Field(
        None, description="Buyer catalog record this RFQ line was created from"
    )


class ExtractedItem(CamelModel):
    """A line item read from a supplier quote document."""
    product_name: str = Field(..., description="Product name (translated to English)")
    product_name_original: Optional[str] = None
    sku: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[float] = None
    total_price: Optional[float] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    lead_time: Optional[str] = None
    alternate_product: bool = Field(False, description="Supplier proposes a substitute")
    alternate_notes: Optional[str] = None

    @field_validator("unit_price", "total_price", mode="before")
    @classmethod
    def _coerce_money(cls, v: Any) -> Optional[float]:
        return coerce_number(v)

    @field_validator("alternate_product", mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> Any:
        # The model answers null when it cannot tell
        return False if v is None else v

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, v: Any) -> Optional[int]:
        number = coerce_number(v)
        return int(round(number)) if number is not None else None

    @field_validator("sku", "brand", "lead_time", "description", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class SupplierInfo(CamelModel):
    """Header fields of a supplier quote."""
    company_name: Optional[str] = None
    quote_number: Optional[str] = None
    quote_date: Optional[str] = None
    valid_until: Optional[str] = None
    subtotal: Optional[float] = None
    shipping: Optional[float] = None
    taxes: Optional[float] = None
    total: Optional[float] = None

    @field_validator("subtotal", "shipping", "taxes", "total", mode="before")
    @classmethod
    def _coerce_money(cls, v: Any) -> Optional[float]:
        return coerce_number(v)

    @field_validator("quote_number", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Optional[str]:
        return str(v) if v is not None else None


class ScoreBreakdown(CamelModel):
    """Per-rule contributions of one requested/extracted pairing."""
    sku: float = 0.0
    brand: float = 0.0
    name: float = 0.0
    matching_tokens: int = 0
    raw: float = 0.0
    confidence: int = Field(0, ge=0, le=100)


class SuggestedMatch(CamelModel):
    """A possible requested item for an extra result."""
    id: str
    item_name: str
    confidence: int = Field(..., ge=0, le=100)


class MatchResult(CamelModel):
    """One outcome of matching requested items against a quote."""
    result_id: str = Field(..., description="Stable id within one result set")
    status: MatchStatus
    confidence: int = Field(0, ge=0, le=100)
    requested_item: Optional[RequestedItem] = None
    extracted_item: Optional[ExtractedItem] = None
    discrepancies: list[str] = Field(default_factory=list)
    score: Optional[ScoreBreakdown] = None
    suggested_matches: list[SuggestedMatch] = Field(default_factory=list)


class ExtraResolution(CamelModel):
    """Human correction of an extra result, kept outside the result itself."""
    result_id: str
    kind: ResolutionKind = ResolutionKind.LINKED
    requested_item_id: Optional[str] = None
    parent_item_name: Optional[str] = None
    note: Optional[str] = None
    resolved_by: Optional[str] = None
