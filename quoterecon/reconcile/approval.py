"""Approval resolver — turns a decision on a quote into catalog mutations.

Approval is best-effort in bulk: a row that cannot be resolved is skipped
and reported, and the remaining rows still produce mutations.
"""

from __future__ import annotations

from typing import Union

import structlog
from pydantic import ValidationError

from quoterecon.config import settings
from quoterecon.errors import InvalidDecisionError
from quoterecon.schemas.approval import (
    ApprovalContext,
    ApprovalDecision,
    ApprovalResult,
    ApprovalSource,
    AuditEntry,
    AuditType,
    CatalogMutation,
    CatalogStatus,
    LineItemSource,
    MatchResultSource,
    PricingRow,
    QuoteStatus,
    SkippedRow,
)
from quoterecon.schemas.common import MatchStatus

logger = structlog.get_logger(__name__)

SKIP_MISSING_CATALOG_LINK = "missing_catalog_link"
SKIP_INVALID_UNIT_PRICE = "invalid_unit_price"
SKIP_MALFORMED_ROW = "malformed_row"

QUOTE_STATUS_BY_DECISION = {
    ApprovalDecision.APPROVE: QuoteStatus.ACCEPTED,
    ApprovalDecision.DECLINE: QuoteStatus.REJECTED,
    ApprovalDecision.REQUEST_REVISION: QuoteStatus.REVISION_REQUESTED,
}


def parse_decision(value: Union[str, ApprovalDecision]) -> ApprovalDecision:
    """Validate a decision before anything else happens."""
    if isinstance(value, ApprovalDecision):
        return value
    try:
        return ApprovalDecision(str(value).strip().lower())
    except ValueError:
        raise InvalidDecisionError(
            f"Invalid action {value!r}. Must be approve, decline, or request_revision"
        ) from None


def retail_price(trade_price: float, markup_percent: float) -> float:
    """Trade price with markup applied, rounded to cents."""
    return round(trade_price * (1 + markup_percent / 100), 2)


def resolve_markup(markup_percent: float | None, context: ApprovalContext) -> float:
    if markup_percent is not None:
        return float(markup_percent)
    if context.supplier_markup_percent is not None:
        return float(context.supplier_markup_percent)
    return settings.default_markup_percent


# ---------------------------------------------------------------------------
# Normalisation: both input variants collapse into PricingRow
# ---------------------------------------------------------------------------

def _rows_from_results(source: MatchResultSource) -> tuple[list[PricingRow], list[SkippedRow]]:
    rows: list[PricingRow] = []
    skipped: list[SkippedRow] = []
    for result in source.results:
        if result.status not in (MatchStatus.MATCHED, MatchStatus.PARTIAL):
            continue
        requested = result.requested_item
        if requested is None:
            continue
        extracted = result.extracted_item
        try:
            rows.append(PricingRow(
                row_id=requested.id,
                requested_item_id=requested.id,
                catalog_item_id=requested.catalog_item_id,
                item_name=requested.item_name,
                unit_price=extracted.unit_price if extracted else None,
                quantity=(extracted.quantity if extracted and extracted.quantity else requested.quantity) or 1,
                lead_time=extracted.lead_time if extracted else None,
            ))
        except ValidationError as exc:
            logger.warning("approval_row_malformed", item_id=requested.id, error=str(exc))
            skipped.append(SkippedRow(item_id=requested.id, reason=SKIP_MALFORMED_ROW))
    return rows, skipped


def _rows_from_line_items(source: LineItemSource) -> tuple[list[PricingRow], list[SkippedRow]]:
    rows: list[PricingRow] = []
    skipped: list[SkippedRow] = []
    for line in source.line_items:
        if not line.requested_item_id:
            # Lines the supplier added on their own have nothing to update
            continue
        try:
            rows.append(PricingRow(
                row_id=line.id,
                requested_item_id=line.requested_item_id,
                catalog_item_id=line.catalog_item_id,
                item_name=line.item_name,
                unit_price=line.unit_price,
                quantity=line.quantity or 1,
                lead_time=line.lead_time,
                currency=line.currency,
            ))
        except ValidationError as exc:
            logger.warning("approval_row_malformed", item_id=line.id, error=str(exc))
            skipped.append(SkippedRow(item_id=line.id, reason=SKIP_MALFORMED_ROW))
    return rows, skipped


def normalize_rows(
    source: ApprovalSource,
    context: ApprovalContext,
) -> tuple[list[PricingRow], list[SkippedRow]]:
    """Reduce either input variant to pricing rows with resolved catalog links."""
    if isinstance(source, MatchResultSource):
        rows, skipped = _rows_from_results(source)
    else:
        rows, skipped = _rows_from_line_items(source)

    for row in rows:
        linked = context.catalog_links.get(row.requested_item_id or "")
        if linked:
            row.catalog_item_id = linked
    return rows, skipped


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _skip(skipped: list[SkippedRow], row: PricingRow, reason: str) -> None:
    logger.warning("approval_row_skipped", item_id=row.row_id, reason=reason)
    skipped.append(SkippedRow(item_id=row.row_id, reason=reason))


def _approve_row(
    row: PricingRow,
    markup: float,
    context: ApprovalContext,
) -> CatalogMutation:
    supplier_name = context.supplier_name or "Supplier"
    currency = row.currency or context.currency or settings.default_currency
    trade = float(row.unit_price)
    rrp = retail_price(trade, markup)
    previous = context.previous_trade_prices.get(row.catalog_item_id)

    audit = AuditEntry(
        catalog_item_id=row.catalog_item_id,
        type=AuditType.PRICE_UPDATED,
        title="Quote Approved",
        description=(
            f"Quote from {supplier_name} approved: Trade ${trade:,.2f}, "
            f"RRP ${rrp:,.2f} (+{markup:g}% markup)"
        ),
        actor_id=context.actor_id,
        actor_name=context.actor_name,
        metadata={
            "quoteId": context.quote_id,
            "requestedItemId": row.requested_item_id,
            "previousTradePrice": previous,
            "tradePrice": trade,
            "rrp": rrp,
            "markupPercent": markup,
            "supplierId": context.supplier_id,
            "approvedById": context.actor_id,
        },
    )
    return CatalogMutation(
        catalog_item_id=row.catalog_item_id,
        status=CatalogStatus.QUOTE_APPROVED,
        trade_price=trade,
        retail_price=rrp,
        currency=currency,
        lead_time=row.lead_time,
        supplier_id=context.supplier_id,
        supplier_name=supplier_name,
        audit=audit,
    )


def _decline_row(row: PricingRow, context: ApprovalContext) -> CatalogMutation:
    supplier_name = context.supplier_name or "Supplier"
    audit = AuditEntry(
        catalog_item_id=row.catalog_item_id,
        type=AuditType.QUOTE_DECLINED,
        title="Quote Declined",
        description=f"Quote from {supplier_name} was declined",
        actor_id=context.actor_id,
        actor_name=context.actor_name,
        metadata={"quoteId": context.quote_id, "declinedById": context.actor_id},
    )
    return CatalogMutation(
        catalog_item_id=row.catalog_item_id,
        status=CatalogStatus.SELECTED,
        audit=audit,
    )


def resolve(
    decision: Union[str, ApprovalDecision],
    source: ApprovalSource,
    markup_percent: float | None = None,
    context: ApprovalContext | None = None,
) -> ApprovalResult:
    """Compute catalog mutations for a decision on a quote.

    approve: matched/partial rows with a positive unit price and a catalog
    link get trade and retail prices and move to QUOTE_APPROVED.
    decline: every linked row moves back to SELECTED.
    request_revision: no mutations, only a quote-level audit entry.

    Never raises for a single bad row; unresolvable rows are listed in
    `skipped`. An invalid decision raises InvalidDecisionError before any
    work is done.
    """
    decision = parse_decision(decision)
    context = context or ApprovalContext()
    log = logger.bind(quote_id=context.quote_id, decision=decision.value)

    result = ApprovalResult(decision=decision, quote_status=QUOTE_STATUS_BY_DECISION[decision])

    if decision == ApprovalDecision.REQUEST_REVISION:
        result.audit_entries.append(AuditEntry(
            type=AuditType.REVISION_REQUESTED,
            title="Revision Requested",
            description=f"Revision requested from {context.supplier_name or 'Supplier'}",
            actor_id=context.actor_id,
            actor_name=context.actor_name,
            metadata={"quoteId": context.quote_id},
        ))
        log.info("approval_resolved", mutations=0, skipped=0)
        return result

    rows, skipped = normalize_rows(source, context)
    result.skipped.extend(skipped)

    if decision == ApprovalDecision.APPROVE:
        markup = resolve_markup(markup_percent, context)
        result.markup_percent = markup
        for row in rows:
            if not row.catalog_item_id:
                _skip(result.skipped, row, SKIP_MISSING_CATALOG_LINK)
                continue
            if row.unit_price is None or row.unit_price <= 0:
                _skip(result.skipped, row, SKIP_INVALID_UNIT_PRICE)
                continue
            try:
                result.mutations.append(_approve_row(row, markup, context))
            except (ValidationError, TypeError, ValueError) as exc:
                log.warning("approval_row_failed", item_id=row.row_id, error=str(exc))
                result.skipped.append(SkippedRow(item_id=row.row_id, reason=SKIP_MALFORMED_ROW))
    else:
        for row in rows:
            if not row.catalog_item_id:
                _skip(result.skipped, row, SKIP_MISSING_CATALOG_LINK)
                continue
            result.mutations.append(_decline_row(row, context))

    log.info(
        "approval_resolved",
        rows=len(rows),
        mutations=len(result.mutations),
        skipped=len(result.skipped),
    )
    return result
