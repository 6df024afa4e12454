from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..core.exceptions import ValidationError

# Formats accepted for user supplied dates (CSV files, query strings).
ACCEPTED_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d-%b-%Y")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_flexible_date(value: Optional[str]) -> date:
    """Parse ISO, US (MM/DD/YYYY or M/D/YYYY) or DD-Mon-YYYY dates."""
    text = (value or "").strip()
    if not text:
        raise ValueError("date is empty")
    for fmt in ACCEPTED_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unsupported date format: {text!r}")


def require_date(value: Optional[str], field_name: str) -> date:
    try:
        return parse_iso_date((value or "").strip())
    except ValueError:
        raise ValidationError(
            f"{field_name} must be a date (YYYY-MM-DD)",
            {field_name: "expected YYYY-MM-DD"},
        )


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="seconds") if value else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return now_local().date()


def week_bounds(day: date) -> tuple[date, date]:
    """Monday..Sunday week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)
