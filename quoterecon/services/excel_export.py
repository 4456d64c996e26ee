"""Excel export — reconciliation workbook for one supplier quote."""

from __future__ import annotations

from pathlib import Path

import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from quoterecon.reconcile.discrepancies import implied_discrepancy
from quoterecon.schemas.reconciliation import ItemMismatch, MatchReport
from quoterecon.storage import local as storage

logger = structlog.get_logger(__name__)

# Column definitions: (header_name, width)
RESULT_COLUMNS = [
    ("status", 12),
    ("confidence", 12),
    ("requested_item", 32),
    ("requested_sku", 18),
    ("requested_qty", 14),
    ("target_unit_price", 16),
    ("quoted_item", 32),
    ("quoted_sku", 18),
    ("quoted_qty", 12),
    ("unit_price", 12),
    ("total_price", 12),
    ("lead_time", 16),
    ("discrepancies", 50),
]

MISMATCH_COLUMNS = [
    ("item_name", 32),
    ("type", 12),
    ("severity", 10),
    ("reasons", 60),
]

STATUS_FILLS = {
    "matched": PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid"),
    "partial": PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid"),
    "missing": PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"),
    "extra": PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid"),
}


def _write_header(ws, columns: list[tuple[str, int]]) -> None:
    header_font = Font(bold=True, size=11)
    for col_idx, (header, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = width
    ws.freeze_panes = "A2"


def generate_reconciliation_excel(
    quote_id: str,
    report: MatchReport,
    mismatches: list[ItemMismatch],
) -> Path:
    """Generate the reconciliation workbook.

    Sheets: "Match Results" (one row per result), "Mismatches" (project-level
    list) and "Summary" (counts and quote totals).

    Returns:
        Path to the generated Excel file.
    """
    wb = Workbook()

    # --- Match results ---
    ws = wb.active
    ws.title = "Match Results"
    _write_header(ws, RESULT_COLUMNS)
    for row_idx, result in enumerate(report.match_results, start=2):
        req = result.requested_item
        ext = result.extracted_item
        values = [
            result.status.value,
            result.confidence,
            req.item_name if req else None,
            (req.sku or req.model_number) if req else None,
            req.quantity if req else None,
            req.target_unit_price if req else None,
            ext.product_name if ext else None,
            ext.sku if ext else None,
            ext.quantity if ext else None,
            ext.unit_price if ext else None,
            ext.total_price if ext else None,
            ext.lead_time if ext else None,
            "; ".join(result.discrepancies) or implied_discrepancy(result.status),
        ]
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)
        ws.cell(row=row_idx, column=1).fill = STATUS_FILLS[result.status.value]

    # --- Mismatches ---
    ws_mm = wb.create_sheet("Mismatches")
    _write_header(ws_mm, MISMATCH_COLUMNS)
    for row_idx, mismatch in enumerate(mismatches, start=2):
        ws_mm.cell(row=row_idx, column=1, value=mismatch.item_name)
        ws_mm.cell(row=row_idx, column=2, value=mismatch.type.value)
        ws_mm.cell(row=row_idx, column=3, value=mismatch.severity.value)
        ws_mm.cell(row=row_idx, column=4, value="; ".join(mismatch.reasons))

    # --- Summary ---
    ws_sum = wb.create_sheet("Summary")
    summary = report.summary
    totals = report.totals
    rows = [
        ("Supplier", report.supplier_info.company_name),
        ("Quote number", report.supplier_info.quote_number),
        ("Total requested", summary.total_requested),
        ("Matched", summary.matched),
        ("Partial", summary.partial),
        ("Missing", summary.missing),
        ("Extra", summary.extra),
        ("Resolved extras", summary.resolved_extras),
        ("Quantity discrepancies", summary.quantity_discrepancies),
        ("Calculated total", totals.calculated_total),
        ("Quote total", totals.quote_total),
        ("Total discrepancy", "yes" if totals.total_discrepancy else "no"),
    ]
    for row_idx, (label, value) in enumerate(rows, start=1):
        ws_sum.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
        ws_sum.cell(row=row_idx, column=2, value=value)
    ws_sum.column_dimensions["A"].width = 26
    ws_sum.column_dimensions["B"].width = 30

    # --- Save ---
    excel_path = storage.get_excel_path(quote_id)
    wb.save(str(excel_path))

    logger.info(
        "excel_generated",
        quote_id=quote_id,
        rows=len(report.match_results),
        path=str(excel_path),
    )
    return excel_path
