from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import today
from ..common.validators import optional_text
from ..core.constants import DEFAULT_STALE_PROJECT_DAYS
from ..core.exceptions import ValidationError
from ..dropdowns.service import BillabilityService
from ..security.permissions import REPORTS, TASK_ACTIVITY, Principal, permission
from ..tasks.model import TaskActivity
from ..tasks.repository import TaskActivityRepository
from . import analytics
from .date_ranges import DateRange, prior_period

logger = logging.getLogger(__name__)

EXPORT_FIELDS = [
    "task_date",
    "username",
    "client",
    "project",
    "phase",
    "hours",
    "billable",
    "task_id",
    "task_name",
    "details",
]


class ReportService:
    """Use case: analytics over logged task activities.

    Callers without TASK_ACTIVITY:READ_ALL only ever see their own hours.
    """

    def __init__(self, tasks: TaskActivityRepository, billability: BillabilityService):
        self._tasks = tasks
        self._billability = billability

    def _activities(self, principal: Principal, period: DateRange, username: Optional[str]) -> Sequence[TaskActivity]:
        principal.require(permission(REPORTS, "VIEW"))
        if period.start_date and period.end_date and period.start_date > period.end_date:
            raise ValidationError("startDate must be on or before endDate", {"startDate": "after endDate"})
        if principal.can_access_all(TASK_ACTIVITY):
            scope = optional_text(username)
        else:
            scope = principal.username
        return self._tasks.list_activities(username=scope, start_date=period.start_date, end_date=period.end_date)

    def user_summaries(self, principal: Principal, period: DateRange, username: Optional[str] = None) -> list[dict]:
        rows = self._activities(principal, period, username)
        return analytics.user_summaries(rows, self._billability.task_classifier())

    def user_hours(self, principal: Principal, period: DateRange, username: Optional[str] = None) -> list[dict]:
        rows = self._activities(principal, period, username)
        return analytics.user_hours(rows, self._billability.task_classifier())

    def phase_distribution(self, principal: Principal, period: DateRange,
                           username: Optional[str] = None) -> list[dict]:
        return analytics.phase_distribution(self._activities(principal, period, username))

    def stale_projects(self, principal: Principal, period: DateRange, username: Optional[str] = None, *,
                       stale_days: int = DEFAULT_STALE_PROJECT_DAYS, on: Optional[date] = None) -> list[dict]:
        if stale_days < 0:
            raise ValidationError("staleDays must not be negative", {"staleDays": "negative"})
        rows = self._activities(principal, period, username)
        return analytics.stale_projects(rows, stale_days, on=on or today())

    def client_billability(self, principal: Principal, period: DateRange,
                           username: Optional[str] = None) -> list[dict]:
        rows = self._activities(principal, period, username)
        return analytics.client_billability(rows, self._billability.task_classifier())

    def client_timeline(self, principal: Principal, period: DateRange, username: Optional[str] = None) -> list[dict]:
        return analytics.client_timeline(self._activities(principal, period, username))

    def day_of_week_hours(self, principal: Principal, period: DateRange,
                          username: Optional[str] = None) -> list[dict]:
        rows = self._activities(principal, period, username)
        return analytics.day_of_week_hours(rows, period.start_date, period.end_date)

    def tracking_compliance(self, principal: Principal, period: DateRange,
                            username: Optional[str] = None) -> list[dict]:
        rows = self._activities(principal, period, username)
        return analytics.tracking_compliance(rows, period.start_date, period.end_date)

    def task_repetition(self, principal: Principal, period: DateRange, username: Optional[str] = None) -> list[dict]:
        return analytics.task_repetition(self._activities(principal, period, username))

    def period_delta(self, principal: Principal, period: DateRange, username: Optional[str] = None) -> dict:
        prior = prior_period(period)
        current_rows = self._activities(principal, period, username)
        prior_rows = self._activities(principal, prior, username)
        return analytics.period_delta(current_rows, prior_rows, period.label, prior.label)

    def export_rows(self, principal: Principal, period: DateRange, username: Optional[str] = None) -> list[dict]:
        principal.require(permission(REPORTS, "EXPORT"))
        rows = self._activities(principal, period, username)
        is_billable = self._billability.task_classifier()
        logger.info("Exporting %s task activities for %s", len(rows), principal.username)
        return [
            {
                "task_date": t.task_date.isoformat(),
                "username": t.username,
                "client": t.client,
                "project": t.project,
                "phase": t.phase,
                "hours": f"{t.hours:.2f}",
                "billable": "Yes" if is_billable(t.client, t.project, t.phase) else "No",
                "task_id": t.task_id or "",
                "task_name": t.task_name or "",
                "details": t.details,
            }
            for t in sorted(rows, key=lambda t: (t.task_date, t.username, t.client, t.project))
        ]
