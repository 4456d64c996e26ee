"""Discrepancy analysis — human-readable deviations between request and quote."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from quoterecon.config import settings
from quoterecon.reconcile.normalizer import normalize_key
from quoterecon.schemas.common import ExtractedItem, MatchResult, MatchStatus, SupplierInfo
from quoterecon.schemas.reconciliation import QuoteTotals

MISSING_MESSAGE = "Requested but not included in quote"
EXTRA_MESSAGE = "Quoted but not requested"


def format_money(value: float) -> str:
    return f"${value:.2f}"


def percent_over(target: float, quoted: float) -> int:
    """Percentage by which quoted exceeds target, rounded half-up."""
    diff = Decimal(str(quoted - target)) / Decimal(str(target)) * 100
    return int(diff.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quantity_message(requested_qty: int, quoted_qty: int | None) -> str | None:
    if quoted_qty is None or quoted_qty == requested_qty:
        return None
    return f"Quantity: requested {requested_qty}, quoted {quoted_qty}"


def alternate_message(extracted: ExtractedItem) -> str | None:
    if not extracted.alternate_product:
        return None
    if extracted.alternate_notes:
        return f"Alternate product suggested: {extracted.alternate_notes}"
    return "Alternate product suggested"


def is_over_target(target: float | None, quoted: float | None, tolerance: float) -> bool:
    if not target or quoted is None:
        return False
    return quoted > target * (1 + tolerance)


def price_message(target: float | None, quoted: float | None, tolerance: float) -> str | None:
    if not is_over_target(target, quoted, tolerance):
        return None
    return (
        f"Price {percent_over(target, quoted)}% above target "
        f"({format_money(target)} target vs {format_money(quoted)} quoted)"
    )


def analyze_discrepancies(result: MatchResult, tolerance: float | None = None) -> list[str]:
    """Deviation notes for a matched or partial result.

    Order is quantity, then substitution, then price. Missing and extra
    results carry their discrepancy in the status itself and return [].
    """
    if tolerance is None:
        tolerance = settings.price_tolerance
    if result.status not in (MatchStatus.MATCHED, MatchStatus.PARTIAL):
        return []
    requested = result.requested_item
    extracted = result.extracted_item
    if requested is None or extracted is None:
        return []

    messages = [
        quantity_message(requested.quantity, extracted.quantity),
        alternate_message(extracted),
        price_message(requested.target_unit_price, extracted.unit_price, tolerance),
    ]
    return [m for m in messages if m]


def implied_discrepancy(status: MatchStatus) -> str | None:
    """Fixed note carried by the status of missing and extra results."""
    if status == MatchStatus.MISSING:
        return MISSING_MESSAGE
    if status == MatchStatus.EXTRA:
        return EXTRA_MESSAGE
    return None


def line_total(item: ExtractedItem) -> float:
    if item.total_price:
        return item.total_price
    return (item.unit_price or 0.0) * (item.quantity or 1)


def analyze_quote_totals(
    supplier_info: SupplierInfo,
    items: list[ExtractedItem],
    tolerance: float | None = None,
) -> QuoteTotals:
    """Compare the quote's stated total with the sum of its lines.

    Only flagged when both totals are known; the difference is usually taxes
    or shipping, which are reported alongside so the reader can tell.
    """
    if tolerance is None:
        tolerance = settings.total_discrepancy_tolerance

    calculated = round(sum(line_total(i) for i in items), 2)
    quote_total = supplier_info.total or 0.0
    total_discrepancy = (
        quote_total > 0 and calculated > 0 and abs(quote_total - calculated) > tolerance
    )
    shipping = supplier_info.shipping or 0.0

    return QuoteTotals(
        calculated_total=calculated,
        quote_total=supplier_info.total,
        total_discrepancy=total_discrepancy,
        has_taxes=bool(supplier_info.taxes and supplier_info.taxes > 0),
        has_shipping_fee=shipping > 0,
        shipping_fee=shipping,
    )


def is_quantity_discrepancy(message: str) -> bool:
    return (normalize_key(message) or "").startswith("quantity")
