"""Matching engine — pairs requested RFQ items with lines read from a supplier quote."""

from __future__ import annotations

import structlog

from quoterecon.reconcile.discrepancies import analyze_discrepancies, analyze_quote_totals
from quoterecon.reconcile.scoring import (
    ACCEPT_THRESHOLD,
    MATCHED_THRESHOLD,
    MAX_SUGGESTIONS,
    score_pair,
    suggestion_score,
)
from quoterecon.reconcile.summary import Resolutions, summarize
from quoterecon.schemas.common import (
    ExtractedItem,
    MatchResult,
    MatchStatus,
    RequestedItem,
    ScoreBreakdown,
    SuggestedMatch,
)
from quoterecon.schemas.extraction import QuoteExtraction
from quoterecon.schemas.reconciliation import MatchReport

logger = structlog.get_logger(__name__)


def extracted_result_id(index: int) -> str:
    return f"x{index}"


def missing_result_id(requested: RequestedItem) -> str:
    return f"r:{requested.id}"


def _best_candidate(
    extracted: ExtractedItem,
    pool: list[RequestedItem],
) -> tuple[int | None, ScoreBreakdown | None]:
    """Index into `pool` of the highest-scoring requested item.

    Ties keep the earlier requested item.
    """
    best_index: int | None = None
    best_score: ScoreBreakdown | None = None
    for i, requested in enumerate(pool):
        breakdown = score_pair(requested, extracted)
        if best_score is None or breakdown.raw > best_score.raw:
            best_index = i
            best_score = breakdown
    return best_index, best_score


def _suggestions(extracted: ExtractedItem, pool: list[RequestedItem]) -> list[SuggestedMatch]:
    scored = [
        SuggestedMatch(id=r.id, item_name=r.item_name, confidence=suggestion_score(r, extracted))
        for r in pool
    ]
    scored = [s for s in scored if s.confidence > 0]
    # sorted() is stable, so equal scores keep requested order
    scored = sorted(scored, key=lambda s: s.confidence, reverse=True)
    return scored[:MAX_SUGGESTIONS]


def match(
    requested: list[RequestedItem],
    extracted: list[ExtractedItem],
    *,
    price_tolerance: float | None = None,
) -> list[MatchResult]:
    """Match extracted quote lines against requested items.

    Greedy, in extracted-list order: each line takes the best-scoring
    requested item still unconsumed, provided its raw score reaches the
    acceptance threshold. An early line can therefore take a requested item
    that a later line would have matched better.

    Output: one result per extracted line (matched, partial or extra) in
    extracted order, followed by one missing result per unconsumed requested
    item in requested order.
    """
    pool = list(requested)
    results: list[MatchResult] = []

    for index, item in enumerate(extracted):
        result_id = extracted_result_id(index)
        best_index, best_score = _best_candidate(item, pool)

        if best_index is None or best_score is None or best_score.raw < ACCEPT_THRESHOLD:
            results.append(MatchResult(
                result_id=result_id,
                status=MatchStatus.EXTRA,
                confidence=0,
                extracted_item=item,
                suggested_matches=_suggestions(item, pool),
            ))
            continue

        chosen = pool.pop(best_index)
        status = MatchStatus.MATCHED if best_score.raw >= MATCHED_THRESHOLD else MatchStatus.PARTIAL
        result = MatchResult(
            result_id=result_id,
            status=status,
            confidence=best_score.confidence,
            requested_item=chosen,
            extracted_item=item,
            score=best_score,
        )
        result.discrepancies = analyze_discrepancies(result, tolerance=price_tolerance)
        results.append(result)

    for leftover in pool:
        results.append(MatchResult(
            result_id=missing_result_id(leftover),
            status=MatchStatus.MISSING,
            confidence=0,
            requested_item=leftover,
        ))

    logger.info(
        "match_complete",
        requested=len(requested),
        extracted=len(extracted),
        matched=sum(1 for r in results if r.status == MatchStatus.MATCHED),
        partial=sum(1 for r in results if r.status == MatchStatus.PARTIAL),
        missing=len(pool),
        extra=sum(1 for r in results if r.status == MatchStatus.EXTRA),
    )
    return results


def build_report(
    requested: list[RequestedItem],
    extraction: QuoteExtraction,
    *,
    price_tolerance: float | None = None,
    resolutions: Resolutions | None = None,
) -> MatchReport:
    """Match an extraction against the RFQ and assemble the full report."""
    results = match(requested, extraction.extracted_items, price_tolerance=price_tolerance)
    return MatchReport(
        supplier_info=extraction.supplier_info,
        match_results=results,
        summary=summarize(results, resolutions),
        totals=analyze_quote_totals(extraction.supplier_info, extraction.extracted_items),
        notes=extraction.notes,
    )
