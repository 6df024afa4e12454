from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.activity_tracking.activity_tracking.common.datetime_utils import (
    parse_flexible_date,
    require_date,
    week_bounds,
)
from src.activity_tracking.activity_tracking.common.validators import (
    optional_text,
    parse_bool,
    parse_decimal,
    require_max_length,
    require_non_empty,
    require_range,
)
from src.activity_tracking.activity_tracking.core.exceptions import ValidationError
from src.activity_tracking.activity_tracking.tasks.service import build_task_input


@pytest.mark.parametrize("raw", ["2026-03-02", "03/02/2026", "3/2/2026", "02-Mar-2026"])
def test_flexible_date_formats(raw):
    assert parse_flexible_date(raw) == date(2026, 3, 2)


def test_flexible_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_flexible_date("next tuesday")
    with pytest.raises(ValueError):
        parse_flexible_date("  ")


def test_api_dates_are_iso_only():
    with pytest.raises(ValidationError) as err:
        require_date("03/02/2026", "taskDate")
    assert "taskDate" in err.value.errors


def test_week_runs_monday_to_sunday():
    assert week_bounds(date(2026, 3, 8)) == (date(2026, 3, 2), date(2026, 3, 8))


def test_text_helpers():
    assert require_non_empty("  x ", "f") == "x"
    with pytest.raises(ValidationError):
        require_non_empty(" ", "f")
    assert optional_text("   ") is None
    with pytest.raises(ValidationError):
        require_max_length("abcdef", "f", 5)


def test_number_helpers():
    assert parse_decimal(" 1.50 ", "hours") == Decimal("1.50")
    for bad in ("abc", "NaN", "", None):
        with pytest.raises(ValidationError):
            parse_decimal(bad, "hours")
    with pytest.raises(ValidationError):
        require_range(Decimal("24.01"), "hours", Decimal("0.01"), Decimal("24.00"))


@pytest.mark.parametrize("raw,expected", [("true", True), ("Yes", True), ("0", False), ("", True), (None, True)])
def test_parse_bool(raw, expected):
    assert parse_bool(raw, default=True) is expected


def test_task_input_bounds_and_rounding():
    fields = build_task_input(task_date="2026-03-02", client="Acme", project="Portal", phase="Dev",
                              hours=7.5, details=None)
    assert fields.hours == Decimal("7.50")
    assert fields.details == ""
    with pytest.raises(ValidationError):
        build_task_input(task_date="2026-03-02", client="Acme", project="Portal", phase="Dev", hours="0")
    with pytest.raises(ValidationError):
        build_task_input(task_date="2026-03-02", client="Acme", project="Portal", phase="Dev", hours="2",
                         task_id="X" * 11)
