from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.activity_tracking.activity_tracking.core.exceptions import ValidationError
from src.activity_tracking.activity_tracking.reports import analytics
from src.activity_tracking.activity_tracking.reports.date_ranges import DateRange, prior_period, range_for_preset
from src.activity_tracking.activity_tracking.tasks.model import TaskActivity


def _task(day, hours, *, user="alice", client="Acme", project="Portal", phase="Development", task_id=None,
          details=""):
    _task.counter += 1
    return TaskActivity(
        activity_id=_task.counter,
        task_date=date.fromisoformat(day),
        client=client,
        project=project,
        phase=phase,
        hours=Decimal(str(hours)),
        details=details,
        username=user,
        task_id=task_id,
    )


_task.counter = 0


def _not_internal(client, project, phase):
    return client != "Internal"


def test_round1_is_half_up():
    assert analytics.round1(Decimal("2.25")) == 2.3
    assert analytics.round1(Decimal("2.35")) == 2.4
    assert analytics.round1(Decimal("0.04")) == 0.0


def test_user_summaries():
    tasks = [
        _task("2026-03-02", 6),
        _task("2026-03-02", 2, client="Internal"),
        _task("2026-03-03", 4, client="Globex"),
        _task("2026-03-02", 1, user="bob"),
    ]
    alice, bob = analytics.user_summaries(tasks, _not_internal)

    assert alice["username"] == "alice"
    assert alice["totalHours"] == 12.0
    assert alice["billableHours"] == 10.0
    assert alice["nonBillableHours"] == 2.0
    assert alice["avgHoursPerDay"] == 5.0
    assert alice["billabilityRate"] == 83.3
    assert alice["topClient"] == "Acme"
    assert alice["lastActivityDate"] == "2026-03-03"
    assert bob["taskCount"] == 1


def test_user_hours_percentages():
    tasks = [_task("2026-03-02", 3), _task("2026-03-02", 1, user="bob")]
    rows = analytics.user_hours(tasks, _not_internal)
    assert [(r["username"], r["percentage"]) for r in rows] == [("alice", 75.0), ("bob", 25.0)]


def test_phase_distribution():
    tasks = [_task("2026-03-02", 3, phase="Design"), _task("2026-03-03", 1, phase="Testing")]
    (portal,) = analytics.phase_distribution(tasks)
    assert portal["topPhase"] == "Design"
    assert portal["phases"][0] == {"phase": "Design", "hours": 3.0, "percentage": 75.0}


def test_stale_projects_uses_threshold():
    tasks = [_task("2026-01-01", 2, project="Old"), _task("2026-03-01", 2, project="Fresh")]
    rows = analytics.stale_projects(tasks, 30, on=date(2026, 3, 10))
    assert [r["project"] for r in rows] == ["Old"]
    assert rows[0]["daysSinceActivity"] == 68


def test_client_timeline_finds_peak_month():
    tasks = [_task("2026-01-05", 2), _task("2026-02-05", 5), _task("2026-02-06", 1)]
    (acme,) = analytics.client_timeline(tasks)
    assert acme["months"] == [{"month": "2026-01", "hours": 2.0}, {"month": "2026-02", "hours": 6.0}]
    assert acme["peakMonth"] == "2026-02"
    assert acme["totalHours"] == 8.0


def test_day_of_week_counts_occurrences_in_range():
    # 2026-03-01 is a Sunday; the range holds two Sundays.
    tasks = [_task("2026-03-01", 4), _task("2026-03-08", 2)]
    rows = analytics.day_of_week_hours(tasks, date(2026, 3, 1), date(2026, 3, 14))
    sunday = rows[0]
    assert sunday["dayName"] == "Sunday"
    assert sunday["occurrencesInRange"] == 2
    assert sunday["avgHoursPerOccurrence"] == 3.0
    assert rows[1]["totalHours"] == 0.0


def test_tracking_compliance_counts_weekdays_only():
    # Mon 2026-03-02 .. Sun 2026-03-08: five workdays.
    tasks = [_task("2026-03-02", 8), _task("2026-03-03", 8), _task("2026-03-07", 2)]
    (alice,) = analytics.tracking_compliance(tasks, date(2026, 3, 2), date(2026, 3, 8))
    assert alice["totalWorkdays"] == 5
    assert alice["daysLogged"] == 2
    assert alice["complianceRate"] == 40.0
    assert alice["recentMissedDates"] == ["2026-03-04", "2026-03-05", "2026-03-06"]


def test_task_repetition_ignores_blank_ids():
    tasks = [
        _task("2026-03-02", 1, task_id="T-1", details="Standup"),
        _task("2026-03-03", 2, task_id="T-1", user="bob"),
        _task("2026-03-03", 2, task_id=" "),
    ]
    (row,) = analytics.task_repetition(tasks)
    assert row["taskId"] == "T-1"
    assert row["occurrences"] == 2
    assert row["uniqueUsers"] == 2
    assert row["avgHoursPerOccurrence"] == 1.5
    assert row["sampleDetails"] == "Standup"


def test_period_delta_trends():
    current = [_task("2026-03-09", 10), _task("2026-03-09", 3, user="carol")]
    prior = [_task("2026-03-02", 8), _task("2026-03-02", 5, user="bob")]
    result = analytics.period_delta(current, prior, "this", "last")
    by_user = {r["name"]: r for r in result["byUser"]}

    assert by_user["alice"]["trend"] == "up"
    assert by_user["alice"]["deltaPercent"] == 25.0
    assert by_user["bob"]["trend"] == "dropped"
    assert by_user["carol"]["trend"] == "new"
    assert by_user["carol"]["deltaPercent"] is None


def test_presets():
    on = date(2026, 3, 18)
    assert range_for_preset("currentWeek", on=on) == DateRange(date(2026, 3, 16), date(2026, 3, 22), "Current Week")
    assert range_for_preset("lastMonth", on=on).start_date == date(2026, 2, 1)
    assert range_for_preset("lastMonth", on=on).end_date == date(2026, 2, 28)
    assert range_for_preset("last3Months", on=on).start_date == date(2025, 12, 1)
    assert range_for_preset("allTime", on=on).start_date is None
    with pytest.raises(ValidationError):
        range_for_preset("fortnight", on=on)


def test_last_month_in_january_wraps_year():
    assert range_for_preset("lastMonth", on=date(2026, 1, 10)).start_date == date(2025, 12, 1)


def test_prior_period_has_same_length():
    prior = prior_period(DateRange(date(2026, 3, 9), date(2026, 3, 15), "week"))
    assert (prior.start_date, prior.end_date) == (date(2026, 3, 2), date(2026, 3, 8))
    with pytest.raises(ValidationError):
        prior_period(DateRange(None, None, "All Time"))
