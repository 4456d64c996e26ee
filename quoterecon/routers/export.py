"""Router: /v1/export/excel/{quote_id} — reconciliation workbook."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel

from quoterecon.reconcile.summary import build_mismatch_list, summarize
from quoterecon.services.excel_export import generate_reconciliation_excel
from quoterecon.storage import local as storage
from quoterecon.storage import reports

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/export", tags=["export"])


class ExcelExportResponse(BaseModel):
    quote_id: str
    path: str
    rows: int


@router.post("/excel/{quote_id}", response_model=ExcelExportResponse)
async def export_excel(quote_id: str):
    """Generate the reconciliation workbook from the stored analysis.

    Summary counts reflect the current resolution overlay.
    """
    report = reports.load_report(quote_id)
    if report is None:
        raise HTTPException(status_code=404, detail="No analysis found for this quote")

    resolutions = reports.load_resolutions(quote_id)
    report = report.model_copy(update={"summary": summarize(report.match_results, resolutions)})
    mismatches = build_mismatch_list(report.match_results, resolutions)
    excel_path = generate_reconciliation_excel(quote_id, report, mismatches)

    return ExcelExportResponse(
        quote_id=quote_id,
        path=str(excel_path),
        rows=len(report.match_results),
    )


@router.get("/excel/{quote_id}")
async def download_excel(quote_id: str):
    """Download the generated reconciliation workbook."""
    excel_path = storage.get_excel_path(quote_id)
    if not excel_path.exists():
        raise HTTPException(status_code=404, detail="Excel file not found. Run export first.")

    return FileResponse(
        path=str(excel_path),
        filename=f"reconciliation_{quote_id}.xlsx",
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
