from __future__ import annotations

import csv
import io

from flask import Flask, request

from ..common.datetime_utils import require_date, today
from ..common.http import api_response
from ..core.constants import DEFAULT_STALE_PROJECT_DAYS
from ..core.exceptions import ValidationError
from ..security.guards import current_principal
from .date_ranges import PRESETS, DateRange, range_for_preset
from .service import EXPORT_FIELDS


def _requested_range() -> DateRange:
    """``?preset=`` wins; otherwise ``startDate``/``endDate`` (both optional)."""
    preset = request.args.get("preset")
    if preset:
        return range_for_preset(preset)
    start = request.args.get("startDate")
    end = request.args.get("endDate")
    return DateRange(
        require_date(start, "startDate") if start else None,
        require_date(end, "endDate") if end else None,
        f"{start or 'beginning'} to {end or 'today'}",
    )


def register(app: Flask, container) -> None:
    service = container.report_service

    def _listing(message: str, rows):
        return api_response(message, rows, count=len(rows))

    def _write_report_csv(*, rows, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.get("/api/reports/date-ranges", endpoint="report_date_ranges")
    def date_ranges():
        on = today()
        data = [{"preset": name, **range_for_preset(name, on=on).to_dict()} for name in PRESETS]
        return _listing("Date range presets", data)

    @app.get("/api/reports/user-summaries", endpoint="report_user_summaries")
    def user_summaries():
        rows = service.user_summaries(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("User summaries", rows)

    @app.get("/api/reports/user-hours", endpoint="report_user_hours")
    def user_hours():
        rows = service.user_hours(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Hours by user", rows)

    @app.get("/api/reports/phase-distribution", endpoint="report_phase_distribution")
    def phase_distribution():
        rows = service.phase_distribution(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Phase distribution by project", rows)

    @app.get("/api/reports/stale-projects", endpoint="report_stale_projects")
    def stale_projects():
        raw = request.args.get("staleDays")
        try:
            stale_days = int(raw) if raw else DEFAULT_STALE_PROJECT_DAYS
        except ValueError:
            raise ValidationError("staleDays must be an integer", {"staleDays": "not an integer"})
        rows = service.stale_projects(
            current_principal(), _requested_range(), request.args.get("username"), stale_days=stale_days
        )
        return _listing("Stale projects", rows)

    @app.get("/api/reports/client-billability", endpoint="report_client_billability")
    def client_billability():
        rows = service.client_billability(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Client billability", rows)

    @app.get("/api/reports/client-timeline", endpoint="report_client_timeline")
    def client_timeline():
        rows = service.client_timeline(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Client activity timeline", rows)

    @app.get("/api/reports/day-of-week", endpoint="report_day_of_week")
    def day_of_week():
        rows = service.day_of_week_hours(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Hours by day of week", rows)

    @app.get("/api/reports/tracking-compliance", endpoint="report_tracking_compliance")
    def tracking_compliance():
        rows = service.tracking_compliance(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Tracking compliance", rows)

    @app.get("/api/reports/task-repetition", endpoint="report_task_repetition")
    def task_repetition():
        rows = service.task_repetition(current_principal(), _requested_range(), request.args.get("username"))
        return _listing("Task repetition", rows)

    @app.get("/api/reports/period-delta", endpoint="report_period_delta")
    def period_delta():
        data = service.period_delta(current_principal(), _requested_range(), request.args.get("username"))
        return api_response("Period over period comparison", data)

    @app.get("/api/reports/export", endpoint="report_export")
    def export_csv():
        period = _requested_range()
        rows = service.export_rows(current_principal(), period, request.args.get("username"))
        start = period.start_date.isoformat() if period.start_date else "all"
        end = period.end_date.isoformat() if period.end_date else "all"
        return _write_report_csv(rows=rows, filename=f"task_activities_{start}_{end}.csv")
