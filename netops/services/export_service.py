"""
NetOps Console
Export Service: CSV, JSON report and Excel workbook generation.

All content is produced in memory; blueprints stream it back with a
dated Content-Disposition filename (``<prefix>-YYYY-MM-DD.<ext>``).
"""

import csv
import io
import json
import logging
from datetime import date, datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from netops.core.exceptions import ValidationError
from netops.services import metrics

logger = logging.getLogger(__name__)

REPORT_COLLECTIONS = ("sites", "equipment", "alerts", "breakdowns", "energy")

HEADER_FILL = PatternFill(start_color="1E3A5F", end_color="1E3A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


def export_filename(prefix: str, ext: str, today: date | None = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"{prefix}-{today.isoformat()}.{ext}"


def flatten_row(row: dict) -> dict:
    """Flatten one level of nested dicts: ``{"sites": {"name": x}}`` → ``sites_name``."""
    flat = {}
    for key, value in row.items():
        if isinstance(value, dict):
            for nested_key, nested_value in value.items():
                flat[f"{key}_{nested_key}"] = nested_value
        else:
            flat[key] = value
    return flat


def flatten_rows(rows) -> tuple[list[str], list[dict]]:
    """Flatten every row and return ``(headers, flat_rows)``.

    Headers are the ordered union of keys across all rows. A relation that is
    a dict in any row appears only as its ``<relation>_<field>`` columns, left
    blank where a row has None.
    """
    nested = {k for r in rows for k, v in r.items() if isinstance(v, dict)}
    flat_rows = [flatten_row(r) for r in rows]
    headers = []
    for row in flat_rows:
        for key in row:
            if key not in nested and key not in headers:
                headers.append(key)
    return headers, flat_rows


def rows_to_csv(rows) -> str:
    """Render rows as CSV.

    Raises:
        ValidationError: ``rows`` is empty.
    """
    if not rows:
        raise ValidationError("No data to export")
    headers, flat_rows = flatten_rows(rows)

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for row in flat_rows:
        writer.writerow(["" if row.get(h) is None else row.get(h) for h in headers])
    return buf.getvalue()


def build_report(snapshot: dict, now: datetime | None = None) -> dict:
    """Bundle every collection with the reports-page summary."""
    now = now or datetime.now(timezone.utc)
    collections = {name: snapshot.get(name) or [] for name in REPORT_COLLECTIONS}
    report = {
        "generatedAt": now.isoformat(),
        "summary": metrics.reports_summary(
            collections["sites"],
            collections["equipment"],
            collections["alerts"],
            collections["breakdowns"],
            collections["energy"],
        ),
    }
    report.update(collections)
    return report


def report_to_json(report: dict) -> str:
    return json.dumps(report, indent=2, default=str)


# ── Excel ────────────────────────────────────────────────────────────────────


def _write_table(ws, rows: list[dict]) -> None:
    if not rows:
        ws["A1"] = "No data"
        ws["A1"].font = Font(italic=True, color="666666")
        return
    headers, flat_rows = flatten_rows(rows)
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
    for r, row in enumerate(flat_rows, 2):
        for col, header in enumerate(headers, 1):
            value = row.get(header)
            cell = ws.cell(row=r, column=col, value=value if not isinstance(value, (list, dict)) else str(value))
            cell.border = THIN_BORDER
    for col, header in enumerate(headers, 1):
        max_len = max([len(str(header))] + [len(str(row.get(header) or "")) for row in flat_rows])
        ws.column_dimensions[get_column_letter(col)].width = min(max(max_len + 4, 12), 60)
    ws.freeze_panes = "A2"


def build_report_xlsx(snapshot: dict, now: datetime | None = None) -> io.BytesIO:
    """Styled workbook: a Summary sheet then one sheet per collection.

    Returns a BytesIO buffer ready to stream.
    """
    report = build_report(snapshot, now)
    wb = Workbook()

    # ── Sheet 1: Summary ─────────────────────────────────────────────
    ws = wb.active
    ws.title = "Summary"
    ws["A1"] = "Network Operations Report"
    ws["A1"].font = Font(size=16, bold=True)
    ws["A2"] = f"Generated: {report['generatedAt']}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")

    for col, header in enumerate(("Metric", "Value"), 1):
        cell = ws.cell(row=4, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
    for r, (key, value) in enumerate(report["summary"].items(), 5):
        ws.cell(row=r, column=1, value=key).border = THIN_BORDER
        ws.cell(row=r, column=2, value=value).border = THIN_BORDER
    ws.column_dimensions["A"].width = 28
    ws.column_dimensions["B"].width = 16

    # ── One sheet per collection ─────────────────────────────────────
    for name in REPORT_COLLECTIONS:
        _write_table(wb.create_sheet(title=name.title()), report[name])

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    logger.info(
        "Report workbook generated",
        extra={name: len(report[name]) for name in REPORT_COLLECTIONS},
    )
    return buf
