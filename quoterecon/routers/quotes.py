"""Router: /v1/quotes/{quote_id} — analysis, review and approval of a supplier quote."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException

from quoterecon.config import settings
from quoterecon.errors import (
    ExtractionError,
    ExtractionNotConfiguredError,
    ExtractionRateLimitedError,
    InvalidDecisionError,
    NotAnExtraError,
    UnknownResultError,
)
from quoterecon.reconcile.approval import parse_decision, resolve
from quoterecon.reconcile.engine import build_report
from quoterecon.reconcile.summary import build_mismatch_list, mark_extra_resolved, summarize
from quoterecon.schemas.approval import (
    ApprovalResult,
    DecisionRequest,
    LineItemSource,
    MatchResultSource,
)
from quoterecon.schemas.extraction import AnalyzeRequest
from quoterecon.schemas.jobs import JobResponse
from quoterecon.schemas.reconciliation import (
    MatchReport,
    MismatchListResponse,
    ResolveExtraRequest,
    StoredReportResponse,
)
from quoterecon.services.quote_extraction import extract_quote
from quoterecon.storage import reports
from quoterecon.storage.job_store import create_job, get_job, get_latest_job
from quoterecon.worker import QUEUE_NAME

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/quotes", tags=["quotes"])


def _extraction_http_error(exc: ExtractionError) -> HTTPException:
    if isinstance(exc, ExtractionNotConfiguredError):
        status = 503
    elif isinstance(exc, ExtractionRateLimitedError):
        status = 429
    else:
        status = 422
    return HTTPException(
        status_code=status,
        detail={"error": exc.code, "message": exc.hint},
    )


def _stored_report(quote_id: str) -> MatchReport:
    report = reports.load_report(quote_id)
    if report is None:
        raise HTTPException(status_code=404, detail="No analysis found for this quote")
    return report


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@router.post("/{quote_id}/analyze", response_model=MatchReport)
async def analyze_quote(quote_id: str, req: AnalyzeRequest):
    """Read the quote document with the vision model and match it against the RFQ.

    The stored report (and any resolution overlay) of a previous analysis is
    replaced. When extraction fails the matcher is not run.
    """
    try:
        extraction = await extract_quote(req.document, req.requested_items)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Quote document not found")
    except ExtractionError as exc:
        logger.warning("analyze_failed", quote_id=quote_id, code=exc.code)
        raise _extraction_http_error(exc)

    report = build_report(req.requested_items, extraction)
    reports.save_report(quote_id, report)
    return report


@router.post("/{quote_id}/analyze/jobs", response_model=JobResponse)
async def analyze_quote_async(quote_id: str, req: AnalyzeRequest):
    """Run the analysis as a background job; poll GET /v1/jobs/{job_id}."""
    job_id = create_job(quote_id)
    task_kwargs = {
        "job_id": job_id,
        "quote_id": quote_id,
        "document": req.document.model_dump(mode="json"),
        "requested_items": [r.model_dump(mode="json") for r in req.requested_items],
    }

    try:
        from redis import Redis
        from rq import Queue

        redis_conn = Redis.from_url(settings.redis_url)
        q = Queue(QUEUE_NAME, connection=redis_conn)
        q.enqueue(
            "quoterecon.workers.tasks.analyze_quote_job",
            kwargs=task_kwargs,
            job_timeout="10m",
        )
        logger.info("job_enqueued", job_id=job_id, queue=QUEUE_NAME)

    except Exception as exc:
        # If Redis/RQ not available, run in a thread (dev mode)
        logger.warning(
            "rq_unavailable",
            error=str(exc),
            msg="Running in a background thread (dev mode)",
        )
        import threading
        from quoterecon.workers.tasks import analyze_quote_job

        thread = threading.Thread(target=analyze_quote_job, kwargs=task_kwargs, daemon=True)
        thread.start()

    job = get_job(job_id)
    return JobResponse(**job)


@router.get("/{quote_id}/analyze/jobs/latest", response_model=JobResponse)
async def latest_analysis_job(quote_id: str):
    job = get_latest_job(quote_id)
    if job is None:
        raise HTTPException(status_code=404, detail="No analysis job for this quote")
    return JobResponse(**job)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------

@router.get("/{quote_id}/report", response_model=StoredReportResponse)
async def get_report(quote_id: str):
    """Stored report with the summary recomputed from the current resolutions."""
    report = _stored_report(quote_id)
    resolutions = reports.load_resolutions(quote_id)
    report = report.model_copy(update={"summary": summarize(report.match_results, resolutions)})
    return StoredReportResponse(
        quote_id=quote_id,
        report=report,
        resolutions=list(resolutions.values()),
    )


@router.get("/{quote_id}/mismatches", response_model=MismatchListResponse)
async def get_mismatches(quote_id: str):
    """Project-level mismatch list (missing, extra, quantity, alternate, price)."""
    report = _stored_report(quote_id)
    mismatches = build_mismatch_list(report.match_results, reports.load_resolutions(quote_id))
    return MismatchListResponse(quote_id=quote_id, mismatches=mismatches, total=len(mismatches))


@router.post("/{quote_id}/extras/resolve", response_model=StoredReportResponse)
async def resolve_extra(quote_id: str, req: ResolveExtraRequest):
    """Mark an extra line as reconciled by hand (linked, component, added to specs, dismissed)."""
    report = _stored_report(quote_id)
    current = reports.load_resolutions(quote_id)
    try:
        updated = mark_extra_resolved(report.match_results, current, req)
    except UnknownResultError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown id: {exc.args[0]}")
    except NotAnExtraError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    reports.save_resolutions(quote_id, updated)
    report = report.model_copy(update={"summary": summarize(report.match_results, updated)})
    return StoredReportResponse(quote_id=quote_id, report=report, resolutions=list(updated.values()))


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------

@router.post("/{quote_id}/decision", response_model=ApprovalResult)
async def decide_quote(quote_id: str, req: DecisionRequest):
    """Approve, decline or request a revision of a quote.

    Uses the stored match results when the quote was analysed, otherwise the
    line items in the request body. Returns the catalog mutations (each with
    its audit entry) for the caller to apply in one transaction, plus the
    rows that had to be skipped.
    """
    try:
        decision = parse_decision(req.action)
    except InvalidDecisionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    report = reports.load_report(quote_id)
    if report is not None and report.match_results:
        source = MatchResultSource(results=report.match_results)
    else:
        source = LineItemSource(line_items=req.line_items)

    context = req.context.model_copy(update={"quote_id": req.context.quote_id or quote_id})
    result = resolve(decision, source, markup_percent=req.markup_percent, context=context)
    reports.save_approval(quote_id, result)

    logger.info(
        "quote_decision",
        quote_id=quote_id,
        decision=decision.value,
        source=source.kind,
        mutations=len(result.mutations),
        skipped=len(result.skipped),
    )
    return result
