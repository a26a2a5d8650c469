"""
Admin Routes (dashboard statistics)

Provides (admin only):
- GET /api/admin/stats/overview
- GET /api/admin/stats/groups
- GET /api/admin/stats/date-range?groupBy=day|week|month
- GET /api/admin/stats/users
- GET /api/admin/stats/tender-types
- GET /api/admin/stats/financial
- GET /api/admin/bqc-entries?page=&limit=
- GET /api/admin/export?format=csv|excel

All list/stat endpoints accept the filters startDate, endDate (yyyy-mm-dd),
groupName, tenderType and search.
"""

from __future__ import annotations

import csv
from datetime import date
from io import BytesIO, StringIO

from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import current_user
from openpyxl import Workbook
from openpyxl.styles import Font

from ...extensions import db
from ...repository import EXPORT_COLUMNS, BQCRepository, EntryFilters
from ...security import admin_required, json_error

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _repository() -> BQCRepository:
    return BQCRepository(db.session)


def _filters() -> EntryFilters:
    return EntryFilters.from_args(request.args)


def _ok(data):
    return jsonify({"success": True, "data": data})


def _parse_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ============================================================
# STATISTICS
# ============================================================

@admin_bp.route("/stats/overview", methods=["GET"])
@admin_required
def stats_overview():
    return _ok(_repository().stats_overview(_filters()))


@admin_bp.route("/stats/groups", methods=["GET"])
@admin_required
def stats_groups():
    return _ok(_repository().group_stats(_filters()))


@admin_bp.route("/stats/date-range", methods=["GET"])
@admin_required
def stats_date_range():
    group_by = (request.args.get("groupBy") or "day").strip().lower()
    return _ok(_repository().date_range_stats(group_by=group_by, filters=_filters()))


@admin_bp.route("/stats/users", methods=["GET"])
@admin_required
def stats_users():
    return _ok(_repository().user_stats())


@admin_bp.route("/stats/tender-types", methods=["GET"])
@admin_required
def stats_tender_types():
    return _ok(_repository().tender_type_stats(_filters()))


@admin_bp.route("/stats/financial", methods=["GET"])
@admin_required
def stats_financial():
    return _ok(_repository().financial_stats(_filters()))


# ============================================================
# ENTRIES / EXPORT
# ============================================================

@admin_bp.route("/bqc-entries", methods=["GET"])
@admin_required
def bqc_entries():
    page = _parse_int(request.args.get("page"), 1)
    limit = _parse_int(request.args.get("limit"), 20)
    return _ok(_repository().entries(page=page, limit=limit, filters=_filters()))


def _csv_response(rows, stamp: str) -> Response:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow([label for _, label in EXPORT_COLUMNS])
    for row in rows:
        writer.writerow(["" if row[key] is None else row[key] for key, _ in EXPORT_COLUMNS])

    response = Response(buffer.getvalue(), mimetype="text/csv")
    response.headers["Content-Disposition"] = f'attachment; filename="bqc-entries-{stamp}.csv"'
    return response


def _excel_response(rows, stamp: str) -> Response:
    wb = Workbook()
    ws = wb.active
    ws.title = "BQC Entries"
    ws.append([label for _, label in EXPORT_COLUMNS])
    for header_cell in ws[1]:
        header_cell.font = Font(bold=True)
    for row in rows:
        ws.append([row[key] for key, _ in EXPORT_COLUMNS])

    buffer = BytesIO()
    wb.save(buffer)
    response = Response(buffer.getvalue(), mimetype=XLSX_CONTENT_TYPE)
    response.headers["Content-Disposition"] = f'attachment; filename="bqc-entries-{stamp}.xlsx"'
    return response


_EXPORTERS = {
    "csv": _csv_response,
    "excel": _excel_response,
    "xlsx": _excel_response,
}


@admin_bp.route("/export", methods=["GET"])
@admin_required
def export():
    fmt = (request.args.get("format") or "csv").strip().lower()
    exporter = _EXPORTERS.get(fmt)
    if exporter is None:
        return json_error("Unsupported export format", 400)

    rows = _repository().export_rows(_filters())
    current_app.logger.info("Admin %s exported %d BQC entries as %s", current_user.username, len(rows), fmt)
    return exporter(rows, date.today().isoformat())
