"""Router: GET /v1/jobs/{job_id} — poll a background quote analysis."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from quoterecon.schemas.jobs import JobResponse
from quoterecon.storage.job_store import get_job

router = APIRouter(prefix="/v1", tags=["jobs"])


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job_status(job_id: str):
    """Status, progress and, once completed, the match report of an analysis job.

    A failed extraction carries `error_code` (not-configured, rate-limited,
    unreadable-document, malformed-response) so the client can fall back to
    manual entry or retry later.
    """
    job = get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return JobResponse(**job)
