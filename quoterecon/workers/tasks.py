"""Background worker tasks — quote analysis flow orchestration."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from quoterecon.errors import ExtractionError
from quoterecon.reconcile.engine import build_report
from quoterecon.schemas.common import JobStatus, RequestedItem
from quoterecon.schemas.extraction import DocumentRef
from quoterecon.services.quote_extraction import extract_quote
from quoterecon.storage import reports
from quoterecon.storage.job_store import fail_job, update_job

logger = structlog.get_logger(__name__)


def analyze_quote_job(
    job_id: str,
    quote_id: str,
    document: dict[str, Any],
    requested_items: list[dict[str, Any]],
) -> None:
    """Extract a supplier quote, match it against the RFQ and store the report.

    Steps:
    1. Read the document with the extraction adapter (one call, no retry)
    2. Match extracted lines against the requested items
    3. Persist the report (replacing any previous analysis)

    Arguments are plain dicts so the task can be enqueued through RQ.
    Extraction failures fail the job with the error code; the matcher is
    never run on a failed extraction.
    """
    log = logger.bind(job_id=job_id, quote_id=quote_id)

    try:
        update_job(job_id, status=JobStatus.RUNNING, progress=0.0, current_step="Starting")
        doc_ref = DocumentRef.model_validate(document)
        requested = [RequestedItem.model_validate(r) for r in requested_items]
        log.info("analysis_started", requested=len(requested))

        update_job(job_id, progress=0.1, current_step="Reading quote document")
        extraction = asyncio.run(extract_quote(doc_ref, requested))
        log.info("quote_extracted", items=len(extraction.extracted_items))

        update_job(job_id, progress=0.8, current_step="Matching items")
        report = build_report(requested, extraction)
        reports.save_report(quote_id, report)

        update_job(
            job_id,
            status=JobStatus.COMPLETED,
            progress=1.0,
            current_step="Completed",
            result=report.model_dump(mode="json", by_alias=True),
        )
        log.info(
            "analysis_completed",
            matched=report.summary.matched,
            partial=report.summary.partial,
            missing=report.summary.missing,
            extra=report.summary.extra,
        )

    except ExtractionError as exc:
        log.warning("analysis_extraction_failed", code=exc.code, error=exc.message)
        fail_job(job_id, exc.hint, error_code=exc.code)
    except Exception as exc:
        log.error("analysis_failed", error=str(exc), exc_info=True)
        fail_job(job_id, str(exc))
