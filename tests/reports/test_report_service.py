from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.activity_tracking.activity_tracking.core.enums import Role
from src.activity_tracking.activity_tracking.core.exceptions import AuthorizationError, ValidationError
from src.activity_tracking.activity_tracking.reports.date_ranges import DateRange
from src.activity_tracking.activity_tracking.reports.service import ReportService
from src.activity_tracking.activity_tracking.security.permissions import DEFAULT_ROLE_PERMISSIONS, Principal
from src.activity_tracking.activity_tracking.tasks.model import TaskActivity


class RecordingTasks:
    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    def list_activities(self, *, username=None, start_date=None, end_date=None, **_):
        self.calls.append((username, start_date, end_date))
        return [r for r in self.rows if not username or r.username == username]


class NothingBillable:
    def task_classifier(self):
        return lambda client, project, phase: False


def _principal(name, role):
    return Principal(username=name, role=role, permissions=DEFAULT_ROLE_PERMISSIONS[role])


ROWS = [
    TaskActivity(1, date(2026, 3, 2), "Acme", "Portal", "Dev", Decimal("5"), "a", "alice", task_id="T1"),
    TaskActivity(2, date(2026, 3, 3), "Acme", "Portal", "Dev", Decimal("3"), "b", "bob"),
]
MARCH = DateRange(date(2026, 3, 1), date(2026, 3, 31), "March")


def test_regular_user_only_sees_own_hours():
    tasks = RecordingTasks(ROWS)
    rows = ReportService(tasks, NothingBillable()).user_hours(_principal("alice", Role.USER.value), MARCH, "bob")
    assert [r["username"] for r in rows] == ["alice"]
    assert tasks.calls == [("alice", date(2026, 3, 1), date(2026, 3, 31))]


def test_reader_of_all_can_filter_by_user():
    tasks = RecordingTasks(ROWS)
    svc = ReportService(tasks, NothingBillable())
    rows = svc.user_hours(_principal("carol", Role.EXPENSE_ADMIN.value), MARCH, "bob")
    assert [r["username"] for r in rows] == ["bob"]
    assert len(svc.user_hours(_principal("carol", Role.EXPENSE_ADMIN.value), MARCH)) == 2


def test_export_needs_export_permission():
    svc = ReportService(RecordingTasks(ROWS), NothingBillable())
    with pytest.raises(AuthorizationError):
        svc.export_rows(_principal("alice", Role.USER.value), MARCH)

    rows = svc.export_rows(Principal(username="root", role=Role.ADMIN.value), MARCH)
    assert rows[0]["hours"] == "5.00"
    assert rows[0]["billable"] == "No"
    assert rows[0]["task_id"] == "T1"


def test_inverted_range_is_rejected():
    svc = ReportService(RecordingTasks(ROWS), NothingBillable())
    with pytest.raises(ValidationError):
        svc.phase_distribution(_principal("alice", Role.USER.value),
                               DateRange(date(2026, 3, 31), date(2026, 3, 1), "bad"))


def test_period_delta_queries_prior_range():
    tasks = RecordingTasks(ROWS)
    ReportService(tasks, NothingBillable()).period_delta(
        Principal(username="root", role=Role.ADMIN.value),
        DateRange(date(2026, 3, 9), date(2026, 3, 15), "week"),
    )
    assert tasks.calls[1] == (None, date(2026, 3, 2), date(2026, 3, 8))
