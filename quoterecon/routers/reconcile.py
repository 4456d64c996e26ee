"""Router: POST /v1/reconcile/match — match requested items against quoted lines."""

from __future__ import annotations

import structlog
from fastapi import APIRouter

from quoterecon.reconcile.engine import build_report
from quoterecon.schemas.extraction import QuoteExtraction
from quoterecon.schemas.reconciliation import MatchReport, MatchRequest

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/reconcile", tags=["reconciliation"])


@router.post("/match", response_model=MatchReport)
async def reconcile_match(req: MatchRequest):
    """Match already-structured quote lines against the RFQ items.

    Every requested item and every quoted line appears in exactly one result:
    - matched / partial: paired, with confidence and discrepancies
    - missing: requested but not quoted
    - extra: quoted but not requested (with suggested candidates)
    """
    extraction = QuoteExtraction(
        supplier_info=req.supplier_info,
        extracted_items=req.extracted_items,
        notes=req.notes,
    )
    return build_report(req.requested_items, extraction)
