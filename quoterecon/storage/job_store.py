"""Analysis job state — Redis-backed, with an in-process fallback and a JSON copy per quote."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from quoterecon.config import settings
from quoterecon.schemas.common import JobStatus
from quoterecon.storage import local as storage

logger = structlog.get_logger(__name__)

JOB_TTL_SECONDS = 86400 * 7
MAX_MEMORY_JOBS = 1000

# Used when Redis is unavailable (dev mode, threaded fallback)
_memory_store: dict[str, dict] = {}
_latest_by_quote: dict[str, str] = {}

_redis_client = None


def _redis():
    """Connected Redis client, or None once a connection attempt has failed."""
    global _redis_client
    if _redis_client is None:
        try:
            import redis as redis_lib
            client = redis_lib.from_url(settings.redis_url, decode_responses=True)
            client.ping()
            logger.info("redis_connected", url=settings.redis_url)
            _redis_client = client
        except Exception:
            logger.warning("redis_unavailable", msg="Falling back to in-memory job store")
            _redis_client = False
    return _redis_client or None


def _job_key(job_id: str) -> str:
    return f"quote-job:{job_id}"


def _latest_key(quote_id: str) -> str:
    return f"quote-job:latest:{quote_id}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_job(quote_id: str) -> str:
    """Register a pending analysis job for a quote and return its id.

    The new job becomes the quote's latest job; earlier jobs stay readable
    until they expire.
    """
    job_id = str(uuid.uuid4())
    now = _now()
    job = {
        "job_id": job_id,
        "quote_id": quote_id,
        "status": JobStatus.PENDING.value,
        "progress": 0.0,
        "current_step": None,
        "result": None,
        "error": None,
        "error_code": None,
        "created_at": now,
        "updated_at": now,
    }
    _save(job)
    _latest_by_quote[quote_id] = job_id
    r = _redis()
    if r:
        try:
            r.set(_latest_key(quote_id), job_id, ex=JOB_TTL_SECONDS)
        except Exception:
            logger.warning("redis_save_failed", quote_id=quote_id)
    logger.info("job_created", job_id=job_id, quote_id=quote_id)
    return job_id


def update_job(
    job_id: str,
    *,
    status: Optional[JobStatus] = None,
    progress: Optional[float] = None,
    current_step: Optional[str] = None,
    result: Optional[dict[str, Any]] = None,
    error: Optional[str] = None,
    error_code: Optional[str] = None,
) -> None:
    """Update selected fields of a job; unknown ids are logged and ignored."""
    job = get_job(job_id)
    if job is None:
        logger.error("job_not_found", job_id=job_id)
        return

    changes = {
        "status": status.value if status is not None else None,
        "progress": progress,
        "current_step": current_step,
        "result": result,
        "error": error,
        "error_code": error_code,
    }
    job.update({k: v for k, v in changes.items() if v is not None})
    job["updated_at"] = _now()
    _save(job)


def fail_job(job_id: str, error: str, error_code: Optional[str] = None) -> None:
    update_job(
        job_id,
        status=JobStatus.FAILED,
        current_step="Failed",
        error=error,
        error_code=error_code,
    )


def get_job(job_id: str) -> Optional[dict]:
    r = _redis()
    if r:
        raw = r.get(_job_key(job_id))
        if raw:
            return json.loads(raw)
    return _memory_store.get(job_id)


def get_latest_job(quote_id: str) -> Optional[dict]:
    """Most recent analysis job of a quote, if any."""
    job_id = None
    r = _redis()
    if r:
        job_id = r.get(_latest_key(quote_id))
    job_id = job_id or _latest_by_quote.get(quote_id)
    return get_job(job_id) if job_id else None


# ---------------------------------------------------------------------------
# Internal persistence
# ---------------------------------------------------------------------------

def _remember(job: dict) -> None:
    """Keep a job in process memory, evicting the oldest beyond MAX_MEMORY_JOBS."""
    _memory_store[job["job_id"]] = job
    while len(_memory_store) > MAX_MEMORY_JOBS:
        evicted_id = next(iter(_memory_store))
        evicted = _memory_store.pop(evicted_id)
        if _latest_by_quote.get(evicted["quote_id"]) == evicted_id:
            del _latest_by_quote[evicted["quote_id"]]


def _save(job: dict) -> None:
    """Persist to memory, Redis (best-effort) and the quote's job.json."""
    job_id = job["job_id"]
    _remember(job)

    r = _redis()
    if r:
        try:
            r.set(_job_key(job_id), json.dumps(job, default=str), ex=JOB_TTL_SECONDS)
        except Exception:
            logger.warning("redis_save_failed", job_id=job_id)

    try:
        job_path = storage.outputs_dir(job["quote_id"]) / "job.json"
        job_path.write_text(json.dumps(job, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
    except OSError:
        logger.warning("json_save_failed", job_id=job_id)
