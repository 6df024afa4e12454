"""Aggregations behind the analytics dashboard.

Every function works on a list of task activities that has already been
scoped to the caller and the requested date range. Hour values are rounded
half-up to one decimal place.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional, Sequence

from ..tasks.model import TaskActivity

BillableCheck = Callable[[Optional[str], Optional[str], Optional[str]], bool]

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MAX_MISSED_DATES = 15
MAX_REPEATED_TASKS = 50
UNKNOWN_USER = "Unknown"
NOT_AVAILABLE = "N/A"

ZERO = Decimal("0")


def round1(value) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _percent(part: Decimal, whole: Decimal) -> float:
    return round1(part / whole * 100) if whole > 0 else 0.0


def _user(task: TaskActivity) -> str:
    return task.username or UNKNOWN_USER


def _billable(task: TaskActivity, is_billable: BillableCheck) -> bool:
    return is_billable(task.client, task.project, task.phase)


def _sum_by(tasks: Iterable[TaskActivity], key: Callable[[TaskActivity], str]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in tasks:
        totals[key(t)] += t.hours
    return dict(totals)


def _top(totals: dict[str, Decimal]) -> str:
    if not totals:
        return NOT_AVAILABLE
    return max(totals.items(), key=lambda kv: kv[1])[0]


def _group(tasks: Iterable[TaskActivity], key: Callable[[TaskActivity], str]) -> dict[str, list[TaskActivity]]:
    groups: dict[str, list[TaskActivity]] = defaultdict(list)
    for t in tasks:
        groups[key(t)].append(t)
    return dict(groups)


def js_day_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def user_summaries(tasks: Sequence[TaskActivity], is_billable: BillableCheck) -> list[dict]:
    result = []
    for username, rows in _group(tasks, _user).items():
        billable = [t for t in rows if _billable(t, is_billable)]
        total = sum((t.hours for t in rows), ZERO)
        billable_hours = sum((t.hours for t in billable), ZERO)
        billable_days = len({t.task_date for t in billable})
        result.append(
            {
                "username": username,
                "totalHours": round1(total),
                "billableHours": round1(billable_hours),
                "nonBillableHours": round1(total - billable_hours),
                "taskCount": len(rows),
                "avgHoursPerDay": round1(billable_hours / billable_days) if billable_days else 0.0,
                "billabilityRate": _percent(billable_hours, total),
                "topClient": _top(_sum_by(billable, lambda t: t.client)),
                "topProject": _top(_sum_by(billable, lambda t: t.project)),
                "lastActivityDate": max(t.task_date for t in rows).isoformat(),
            }
        )
    result.sort(key=lambda r: r["totalHours"], reverse=True)
    return result


def user_hours(tasks: Sequence[TaskActivity], is_billable: BillableCheck) -> list[dict]:
    totals = _sum_by(tasks, _user)
    billable = _sum_by((t for t in tasks if _billable(t, is_billable)), _user)
    grand_total = sum(totals.values(), ZERO)
    result = [
        {
            "username": username,
            "hours": round1(total),
            "billableHours": round1(billable.get(username, ZERO)),
            "percentage": _percent(total, grand_total),
        }
        for username, total in totals.items()
    ]
    result.sort(key=lambda r: r["hours"], reverse=True)
    return result


def phase_distribution(tasks: Sequence[TaskActivity]) -> list[dict]:
    result = []
    for project, rows in _group(tasks, lambda t: t.project).items():
        total = sum((t.hours for t in rows), ZERO)
        phases = [
            {"phase": phase, "hours": round1(hours), "percentage": _percent(hours, total)}
            for phase, hours in _sum_by(rows, lambda t: t.phase).items()
        ]
        phases.sort(key=lambda p: p["hours"], reverse=True)
        result.append(
            {
                "project": project,
                "totalHours": round1(total),
                "topClient": _top(_sum_by(rows, lambda t: t.client)),
                "phases": phases,
                "topPhase": phases[0]["phase"] if phases else NOT_AVAILABLE,
            }
        )
    result.sort(key=lambda r: r["totalHours"], reverse=True)
    return result


def stale_projects(tasks: Sequence[TaskActivity], stale_days: int, *, on: date) -> list[dict]:
    result = []
    for project, rows in _group(tasks, lambda t: t.project).items():
        last = max(t.task_date for t in rows)
        days_since = (on - last).days
        if days_since < stale_days:
            continue
        result.append(
            {
                "project": project,
                "totalHours": round1(sum((t.hours for t in rows), ZERO)),
                "lastActivityDate": last.isoformat(),
                "daysSinceActivity": days_since,
                "primaryClient": _top(_sum_by(rows, lambda t: t.client)),
                "activeUsers": sorted({_user(t) for t in rows}),
            }
        )
    result.sort(key=lambda r: r["daysSinceActivity"], reverse=True)
    return result


def client_billability(tasks: Sequence[TaskActivity], is_billable: BillableCheck) -> list[dict]:
    totals = _sum_by(tasks, lambda t: t.client)
    billable = _sum_by((t for t in tasks if _billable(t, is_billable)), lambda t: t.client)
    result = []
    for client, total in totals.items():
        billable_hours = billable.get(client, ZERO)
        result.append(
            {
                "client": client,
                "totalHours": round1(total),
                "billableHours": round1(billable_hours),
                "nonBillableHours": round1(total - billable_hours),
                "billabilityRate": _percent(billable_hours, total),
            }
        )
    result.sort(key=lambda r: r["totalHours"], reverse=True)
    return result


def client_timeline(tasks: Sequence[TaskActivity]) -> list[dict]:
    result = []
    for client, rows in _group(tasks, lambda t: t.client).items():
        by_month = _sum_by(rows, lambda t: f"{t.task_date:%Y-%m}")
        months = [{"month": m, "hours": round1(h)} for m, h in sorted(by_month.items())]
        result.append(
            {
                "client": client,
                "totalHours": round1(sum(Decimal(str(m["hours"])) for m in months)),
                "months": months,
                "peakMonth": _top(by_month) if by_month else "",
            }
        )
    result.sort(key=lambda r: r["totalHours"], reverse=True)
    return result


def _days(start: date, end: date) -> Iterable[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def day_of_week_hours(tasks: Sequence[TaskActivity], start_date: Optional[date] = None,
                      end_date: Optional[date] = None) -> list[dict]:
    hours = [ZERO] * 7
    for t in tasks:
        hours[js_day_index(t.task_date)] += t.hours

    if (start_date is None or end_date is None) and tasks:
        dates = [t.task_date for t in tasks]
        start_date, end_date = min(dates), max(dates)

    occurrences = [0] * 7
    if start_date and end_date:
        for day in _days(start_date, end_date):
            occurrences[js_day_index(day)] += 1
    else:
        occurrences = [1] * 7

    result = []
    for index, name in enumerate(DAY_NAMES):
        total = round1(hours[index])
        result.append(
            {
                "dayName": name,
                "dayIndex": index,
                "totalHours": total,
                "avgHoursPerOccurrence": round1(Decimal(str(total)) / occurrences[index]) if occurrences[index] else 0.0,
                "occurrencesInRange": occurrences[index],
            }
        )
    return result


def tracking_compliance(tasks: Sequence[TaskActivity], start_date: Optional[date],
                        end_date: Optional[date]) -> list[dict]:
    if start_date is None or end_date is None:
        return []
    weekdays = [d for d in _days(start_date, end_date) if d.weekday() < 5]
    logged_by_user: dict[str, set[date]] = defaultdict(set)
    for t in tasks:
        logged_by_user[_user(t)].add(t.task_date)

    result = []
    for username, logged in logged_by_user.items():
        missed = [d for d in weekdays if d not in logged]
        days_logged = len(weekdays) - len(missed)
        result.append(
            {
                "username": username,
                "totalWorkdays": len(weekdays),
                "daysLogged": days_logged,
                "daysMissing": len(missed),
                "complianceRate": round1(Decimal(days_logged) / len(weekdays) * 100) if weekdays else 100.0,
                "recentMissedDates": [d.isoformat() for d in missed[-MAX_MISSED_DATES:]],
            }
        )
    result.sort(key=lambda r: r["complianceRate"])
    return result


def task_repetition(tasks: Sequence[TaskActivity]) -> list[dict]:
    result = []
    groups = _group((t for t in tasks if (t.task_id or "").strip()), lambda t: t.task_id.strip())
    for task_id, rows in groups.items():
        total = round1(sum((t.hours for t in rows), ZERO))
        result.append(
            {
                "taskId": task_id,
                "occurrences": len(rows),
                "totalHours": total,
                "avgHoursPerOccurrence": round1(Decimal(str(total)) / len(rows)),
                "uniqueUsers": len({_user(t) for t in rows}),
                "topClient": _top(_sum_by(rows, lambda t: t.client)),
                "topProject": _top(_sum_by(rows, lambda t: t.project)),
                "sampleDetails": next((t.details for t in rows if t.details), ""),
            }
        )
    result.sort(key=lambda r: r["occurrences"], reverse=True)
    return result[:MAX_REPEATED_TASKS]


def _trend(current: float, prior: float, delta: float) -> str:
    if prior == 0:
        return "new"
    if current == 0:
        return "dropped"
    if delta > 0:
        return "up"
    if delta < 0:
        return "down"
    return "flat"


def _deltas(current: Sequence[TaskActivity], prior: Sequence[TaskActivity],
            key: Callable[[TaskActivity], str]) -> list[dict]:
    cur_totals = _sum_by(current, key)
    prior_totals = _sum_by(prior, key)
    result = []
    for name in set(cur_totals) | set(prior_totals):
        c = round1(cur_totals.get(name, ZERO))
        p = round1(prior_totals.get(name, ZERO))
        delta = round1(Decimal(str(c)) - Decimal(str(p)))
        raw_delta = cur_totals.get(name, ZERO) - prior_totals.get(name, ZERO)
        result.append(
            {
                "name": name,
                "currentHours": c,
                "priorHours": p,
                "delta": delta,
                "deltaPercent": round1(raw_delta / prior_totals[name] * 100) if p > 0 else None,
                "trend": _trend(c, p, delta),
            }
        )
    result.sort(key=lambda r: (-abs(r["delta"]), r["name"]))
    return result


def period_delta(current: Sequence[TaskActivity], prior: Sequence[TaskActivity],
                 current_label: str, prior_label: str) -> dict:
    return {
        "byUser": _deltas(current, prior, _user),
        "byClient": _deltas(current, prior, lambda t: t.client),
        "currentLabel": current_label,
        "priorLabel": prior_label,
    }
