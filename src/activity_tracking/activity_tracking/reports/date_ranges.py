from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import format_date, today, week_bounds
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class DateRange:
    start_date: Optional[date]
    end_date: Optional[date]
    label: str

    def to_dict(self) -> dict:
        return {"startDate": format_date(self.start_date), "endDate": format_date(self.end_date), "label": self.label}


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _current_week(on: date) -> DateRange:
    start, end = week_bounds(on)
    return DateRange(start, end, "Current Week")


def _current_month(on: date) -> DateRange:
    return DateRange(on.replace(day=1), _month_end(on.year, on.month), "This Month")


def _last_month(on: date) -> DateRange:
    year, month = _shift_month(on.year, on.month, -1)
    return DateRange(date(year, month, 1), _month_end(year, month), "Last Month")


def _last_3_months(on: date) -> DateRange:
    year, month = _shift_month(on.year, on.month, -3)
    return DateRange(date(year, month, 1), _month_end(on.year, on.month), "Last 3 Months")


def _current_year(on: date) -> DateRange:
    return DateRange(date(on.year, 1, 1), date(on.year, 12, 31), "This Year")


def _all_time(on: date) -> DateRange:
    return DateRange(None, None, "All Time")


PRESETS = {
    "currentWeek": _current_week,
    "currentMonth": _current_month,
    "lastMonth": _last_month,
    "last3Months": _last_3_months,
    "currentYear": _current_year,
    "allTime": _all_time,
}


def range_for_preset(preset: str, *, on: Optional[date] = None) -> DateRange:
    builder = PRESETS.get(preset)
    if builder is None:
        raise ValidationError(
            f"Unknown date range preset: {preset}",
            {"preset": "expected one of " + ", ".join(PRESETS)},
        )
    return builder(on or today())


def prior_period(current: DateRange) -> DateRange:
    """The range of equal length that ends the day before ``current`` starts."""
    if current.start_date is None or current.end_date is None:
        raise ValidationError("A bounded date range is required for period comparison")
    length = current.end_date - current.start_date
    end = current.start_date - timedelta(days=1)
    start = end - length
    return DateRange(start, end, f"{start.isoformat()} to {end.isoformat()}")
