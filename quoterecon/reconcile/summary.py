"""Reconciliation summary — counts and presentation lists derived from results.

Nothing here is stored as truth: summaries are recomputed from the current
result set plus the resolution overlay every time they are shown.
"""

from __future__ import annotations

from typing import Mapping

import structlog

from quoterecon.config import settings
from quoterecon.errors import NotAnExtraError, UnknownResultError
from quoterecon.reconcile.discrepancies import (
    alternate_message,
    format_money,
    is_over_target,
    is_quantity_discrepancy,
    percent_over,
)
from quoterecon.schemas.common import ExtraResolution, MatchResult, MatchStatus
from quoterecon.schemas.reconciliation import (
    ItemMismatch,
    MismatchType,
    ReconciliationSummary,
    Severity,
)

logger = structlog.get_logger(__name__)

Resolutions = Mapping[str, ExtraResolution]


def is_resolved(result: MatchResult, resolutions: Resolutions | None) -> bool:
    return (
        result.status == MatchStatus.EXTRA
        and resolutions is not None
        and result.result_id in resolutions
    )


def summarize(
    results: list[MatchResult],
    resolutions: Resolutions | None = None,
) -> ReconciliationSummary:
    """Count results by status.

    Extras resolved by a human are reported as matched and counted in
    `resolved_extras`; their status tag is left untouched.
    """
    summary = ReconciliationSummary()
    for result in results:
        if result.status == MatchStatus.MATCHED:
            summary.matched += 1
        elif result.status == MatchStatus.PARTIAL:
            summary.partial += 1
        elif result.status == MatchStatus.MISSING:
            summary.missing += 1
        elif is_resolved(result, resolutions):
            summary.matched += 1
            summary.resolved_extras += 1
        else:
            summary.extra += 1

        if result.requested_item is not None:
            summary.total_requested += 1
        if result.extracted_item is not None:
            summary.extracted_total += 1
        if any(is_quantity_discrepancy(d) for d in result.discrepancies):
            summary.quantity_discrepancies += 1

    return summary


def mark_extra_resolved(
    results: list[MatchResult],
    resolutions: Resolutions | None,
    resolution: ExtraResolution,
) -> dict[str, ExtraResolution]:
    """Return a new overlay with `resolution` applied.

    Neither the results nor the given overlay are modified.
    """
    by_id = {r.result_id: r for r in results}
    target = by_id.get(resolution.result_id)
    if target is None:
        raise UnknownResultError(resolution.result_id)
    if target.status != MatchStatus.EXTRA:
        raise NotAnExtraError(
            f"Result {resolution.result_id} is {target.status.value}, only extra results can be resolved"
        )
    if resolution.requested_item_id is not None:
        known = {r.requested_item.id for r in results if r.requested_item is not None}
        if resolution.requested_item_id not in known:
            raise UnknownResultError(resolution.requested_item_id)

    overlay = dict(resolutions or {})
    overlay[resolution.result_id] = resolution
    logger.info(
        "extra_resolved",
        result_id=resolution.result_id,
        kind=resolution.kind.value,
        requested_item_id=resolution.requested_item_id,
    )
    return overlay


def build_mismatch_list(
    results: list[MatchResult],
    resolutions: Resolutions | None = None,
    tolerance: float | None = None,
) -> list[ItemMismatch]:
    """Project-level mismatch list, grouped missing → extra → quantity → alternate → price."""
    if tolerance is None:
        tolerance = settings.project_price_tolerance

    missing: list[ItemMismatch] = []
    extra: list[ItemMismatch] = []
    quantity: list[ItemMismatch] = []
    alternate: list[ItemMismatch] = []
    price: list[ItemMismatch] = []

    for result in results:
        req = result.requested_item
        ext = result.extracted_item

        if result.status == MatchStatus.MISSING and req is not None:
            missing.append(ItemMismatch(
                item_name=req.item_name,
                type=MismatchType.MISSING,
                severity=Severity.ERROR,
                reasons=["This item was requested but NOT included in the supplier's quote"],
                result_id=result.result_id,
                quantity=req.quantity,
                unit_price=req.target_unit_price,
                brand=req.brand,
                sku=req.sku or req.model_number,
            ))
            continue

        if result.status == MatchStatus.EXTRA and ext is not None:
            if is_resolved(result, resolutions):
                continue
            extra.append(ItemMismatch(
                item_name=ext.product_name,
                type=MismatchType.EXTRA,
                severity=Severity.WARNING,
                reasons=["This item was added by the supplier but was NOT in the original request"],
                result_id=result.result_id,
                quantity=ext.quantity,
                unit_price=ext.unit_price,
                total_price=ext.total_price,
                brand=ext.brand,
                sku=ext.sku,
            ))
            continue

        if req is None or ext is None:
            continue

        if ext.quantity is not None and ext.quantity != req.quantity:
            delta = ext.quantity - req.quantity
            quantity.append(ItemMismatch(
                item_name=req.item_name,
                type=MismatchType.QUANTITY,
                severity=Severity.WARNING,
                reasons=[
                    f"Requested quantity: {req.quantity}",
                    f"Quoted quantity: {ext.quantity}",
                    f"Difference: {'+' if delta > 0 else ''}{delta}",
                ],
                result_id=result.result_id,
                quantity=ext.quantity,
                unit_price=ext.unit_price,
                total_price=ext.total_price,
                brand=req.brand,
                sku=req.sku,
            ))

        note = alternate_message(ext)
        if note:
            alternate.append(ItemMismatch(
                item_name=req.item_name,
                type=MismatchType.ALTERNATE,
                severity=Severity.WARNING,
                reasons=[note],
                result_id=result.result_id,
                quantity=ext.quantity,
                unit_price=ext.unit_price,
                brand=ext.brand,
                sku=ext.sku,
            ))

        target = req.target_unit_price
        quoted = ext.unit_price
        if is_over_target(target, quoted, tolerance):
            price.append(ItemMismatch(
                item_name=req.item_name,
                type=MismatchType.PRICE,
                severity=Severity.WARNING,
                reasons=[
                    f"Target price: {format_money(target)}",
                    f"Quoted price: {format_money(quoted)}",
                    f"{percent_over(target, quoted)}% above target budget",
                ],
                result_id=result.result_id,
                quantity=ext.quantity,
                unit_price=quoted,
                total_price=ext.total_price,
                brand=req.brand,
                sku=req.sku,
            ))

    return missing + extra + quantity + alternate + price
