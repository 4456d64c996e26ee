"""Per-quote persistence of match reports, resolution overlays and approvals."""

from __future__ import annotations

from typing import Optional

import structlog

from quoterecon.schemas.approval import ApprovalResult
from quoterecon.schemas.common import ExtraResolution
from quoterecon.schemas.reconciliation import MatchReport
from quoterecon.storage import local as storage

logger = structlog.get_logger(__name__)

REPORT_ARTIFACT = "match_report"
RESOLUTIONS_ARTIFACT = "resolutions"
APPROVAL_ARTIFACT = "approval"


def save_report(quote_id: str, report: MatchReport) -> None:
    """Store a fresh report; a new analysis replaces the previous one and its overlay."""
    storage.save_artifact(quote_id, REPORT_ARTIFACT, report.model_dump(mode="json", by_alias=True))
    storage.save_artifact(quote_id, RESOLUTIONS_ARTIFACT, [])
    logger.info("report_saved", quote_id=quote_id, results=len(report.match_results))


def load_report(quote_id: str) -> Optional[MatchReport]:
    data = storage.load_artifact(quote_id, REPORT_ARTIFACT)
    if data is None:
        return None
    return MatchReport.model_validate(data)


def load_resolutions(quote_id: str) -> dict[str, ExtraResolution]:
    data = storage.load_artifact(quote_id, RESOLUTIONS_ARTIFACT) or []
    resolutions = [ExtraResolution.model_validate(item) for item in data]
    return {r.result_id: r for r in resolutions}


def save_resolutions(quote_id: str, resolutions: dict[str, ExtraResolution]) -> None:
    storage.save_artifact(
        quote_id,
        RESOLUTIONS_ARTIFACT,
        [r.model_dump(mode="json", by_alias=True) for r in resolutions.values()],
    )


def save_approval(quote_id: str, result: ApprovalResult) -> None:
    storage.save_artifact(quote_id, APPROVAL_ARTIFACT, result.model_dump(mode="json", by_alias=True))
