"""
NetOps Console
Export Blueprint: CSV per collection, JSON and Excel reports.

Routes:
    GET /api/v1/export/<collection>.csv   sites | equipment | alerts | breakdowns | energy
    GET /api/v1/export/report.json        telecom-report-YYYY-MM-DD.json
    GET /api/v1/export/report.xlsx        telecom-report-YYYY-MM-DD.xlsx

No temp files: content is built in memory.
"""

import logging

from flask import Blueprint, Response

from netops.blueprints import register_error_handlers
from netops.services.dashboard_service import export_snapshot
from netops.services.export_service import (
    REPORT_COLLECTIONS,
    build_report,
    build_report_xlsx,
    export_filename,
    report_to_json,
    rows_to_csv,
)
from netops.utils.errors import E, api_error

logger = logging.getLogger(__name__)

export_bp = register_error_handlers(
    Blueprint("export", __name__, url_prefix="/api/v1/export")
)

REPORT_PREFIX = "telecom-report"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(content, mimetype: str, filename: str) -> Response:
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@export_bp.route("/<collection>.csv", methods=["GET"])
def export_csv(collection: str):
    """One collection as CSV.  An empty collection answers 400 "No data to export"."""
    if collection not in REPORT_COLLECTIONS:
        return api_error(
            E.NOT_FOUND, f"Unknown export collection '{collection}'",
            details={"allowed": list(REPORT_COLLECTIONS)},
        )
    rows = export_snapshot()[collection]
    content = rows_to_csv(rows)
    logger.info("CSV export", extra={"collection": collection, "rows": len(rows)})
    return _attachment(content, "text/csv; charset=utf-8", export_filename(collection, "csv"))


@export_bp.route("/report.json", methods=["GET"])
def export_report_json():
    report = build_report(export_snapshot())
    return _attachment(
        report_to_json(report), "application/json", export_filename(REPORT_PREFIX, "json"),
    )


@export_bp.route("/report.xlsx", methods=["GET"])
def export_report_xlsx():
    buf = build_report_xlsx(export_snapshot())
    return _attachment(buf.getvalue(), XLSX_MIMETYPE, export_filename(REPORT_PREFIX, "xlsx"))
