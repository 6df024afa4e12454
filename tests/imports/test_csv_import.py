from __future__ import annotations

from decimal import Decimal

import pytest

from src.activity_tracking.activity_tracking.core.enums import ExpenseStatus, Role
from src.activity_tracking.activity_tracking.core.exceptions import AuthorizationError, ValidationError
from src.activity_tracking.activity_tracking.dropdowns.model import DropdownValue
from src.activity_tracking.activity_tracking.imports.csv_import import (
    CsvImportService,
    iter_records,
    normalize_header,
)
from src.activity_tracking.activity_tracking.security.permissions import DEFAULT_ROLE_PERMISSIONS, Principal

ADMIN = Principal(username="root", role=Role.ADMIN.value)
USER = Principal(username="alice", role=Role.USER.value, permissions=DEFAULT_ROLE_PERMISSIONS[Role.USER.value])


class InMemoryDropdowns:
    def __init__(self, *values: tuple[str, str, str]):
        self.rows: list[DropdownValue] = []
        for category, subcategory, item in values:
            self.create(category=category, subcategory=subcategory, item_value=item,
                        display_order=0, is_active=True, non_billable=False)

    def find(self, *, category, subcategory, item_value):
        return next(
            (v for v in self.rows
             if (v.category, v.subcategory, v.item_value) == (category, subcategory, item_value)),
            None,
        )

    def list_values(self, *, category=None, subcategory=None, active_only=True):
        return [
            v for v in self.rows
            if (not category or v.category == category)
            and (not subcategory or v.subcategory == subcategory)
            and (v.is_active or not active_only)
        ]

    def create(self, *, category, subcategory, item_value, display_order, is_active, non_billable):
        new_id = len(self.rows) + 1
        self.rows.append(DropdownValue(new_id, category, subcategory, item_value, display_order,
                                       is_active, non_billable))
        return new_id


class InMemoryTasks:
    def __init__(self):
        self.created = []

    def exists_duplicate(self, *, username, fields, exclude_id=None):
        return (username, fields) in self.created

    def create(self, *, username, fields):
        self.created.append((username, fields))
        return len(self.created)


class InMemoryExpenses:
    def __init__(self):
        self.created = []

    def exists_duplicate(self, *, username, fields):
        return any(u == username and f == fields for u, f, _ in self.created)

    def create(self, *, username, fields, status=ExpenseStatus.DRAFT, modified_by=None):
        self.created.append((username, fields, status))
        return len(self.created)


class KnownUsers:
    def __init__(self, *names):
        self._names = set(names)
        self.lookups = 0

    def get_by_username(self, username):
        self.lookups += 1
        return object() if username in self._names else None


def _service(tasks=None, expenses=None, dropdowns=None, users=None, **kw):
    dropdowns = dropdowns or InMemoryDropdowns(
        ("TASK", "CLIENT", "Acme"),
        ("TASK", "PROJECT", "Portal"),
        ("TASK", "PHASE", "Development"),
        ("TASK", "PHASE", "Meeting"),
        ("EXPENSE", "CLIENT", "Acme"),
        ("EXPENSE", "EXPENSE_TYPE", "Travel"),
        ("EXPENSE", "PAYMENT_METHOD", "Corporate Card"),
    )
    return CsvImportService(
        tasks or InMemoryTasks(),
        expenses or InMemoryExpenses(),
        dropdowns,
        users or KnownUsers("alice", "bob", "root"),
        **kw,
    )


TASK_HEADER = "Task Date,Client,Project,Phase,Task_Hours,Details,Username\n"


def test_headers_are_normalised():
    assert normalize_header(" Task_Date ") == "taskdate"
    assert normalize_header("expense-status") == "expensestatus"


def test_nine_good_rows_and_one_bad_row():
    lines = [f"2026-03-{day:02d},Acme,Portal,Development,7.5,Build day {day},alice\n" for day in range(1, 10)]
    lines.insert(4, "2026-03-15,Acme,Portal,Development,30,Too many hours,alice\n")
    tasks = InMemoryTasks()

    result = _service(tasks=tasks).import_task_activities(ADMIN, (TASK_HEADER + "".join(lines)).encode())

    assert result.success_count == 9
    assert result.error_count == 1
    assert result.processed_count == 9
    # Header is line 1, so the fifth data row is line 6.
    assert result.errors[0].startswith("Line 6:")
    assert len(tasks.created) == 9


def test_duplicate_rows_are_counted_not_inserted():
    row = "03/02/2026,Acme,Portal,Meeting,1,Standup,bob\n"
    tasks = InMemoryTasks()
    result = _service(tasks=tasks).import_task_activities(ADMIN, (TASK_HEADER + row + row).encode())
    assert result.success_count == 1
    assert result.duplicate_count == 1
    assert result.to_dict()["processedCount"] == 2


def test_blank_username_means_importer_and_unknown_usernames_fail():
    body = TASK_HEADER + "2026-03-02,Acme,Portal,Meeting,1,Standup,\n" + "2026-03-02,Acme,Portal,Meeting,1,x,zed\n"
    tasks = InMemoryTasks()
    result = _service(tasks=tasks).import_task_activities(ADMIN, body.encode())
    assert [u for u, _ in tasks.created] == ["root"]
    assert result.errors == ["Line 3: Unknown username: zed"]


def test_unknown_dropdown_value_is_an_error():
    body = TASK_HEADER + "2026-03-02,Globex,Portal,Meeting,1,Standup,alice\n"
    result = _service().import_task_activities(ADMIN, body.encode())
    assert result.error_count == 1
    assert "Globex" in result.errors[0]


def test_windows_1252_file_is_decoded():
    body = TASK_HEADER + "2026-03-02,Acme,Portal,Meeting,1,Caf\xe9 r\xe9sum\xe9,alice\n"
    tasks = InMemoryTasks()
    result = _service(tasks=tasks).import_task_activities(ADMIN, body.encode("cp1252"))
    assert result.success_count == 1
    assert tasks.created[0][1].details == "Café résumé"


def test_utf8_bom_is_ignored():
    records = list(iter_records(("\ufeff" + TASK_HEADER + "2026-03-02,Acme,Portal,Meeting,1,x,alice\n").encode()))
    assert records[0][0] == 2
    assert "taskdate" in records[0][1]


def test_task_import_requires_read_all():
    with pytest.raises(AuthorizationError):
        _service().import_task_activities(USER, (TASK_HEADER + "2026-03-02,Acme,Portal,Meeting,1,x,\n").encode())


def test_empty_and_oversized_files_are_rejected():
    with pytest.raises(ValidationError):
        _service().import_task_activities(ADMIN, b"")
    with pytest.raises(ValidationError):
        _service(max_bytes=10).import_task_activities(ADMIN, (TASK_HEADER * 2).encode())


EXPENSE_HEADER = (
    "username,client,project,expense_date,expense_type,description,amount,currency,"
    "payment_method,vendor,reference_number,expense_status\n"
)


def test_expense_import_defaults_status_to_draft_and_keeps_given_status():
    expenses = InMemoryExpenses()
    body = (
        EXPENSE_HEADER
        + "alice,Acme,,2026-03-02,Travel,Taxi,12.40,,Corporate Card,,,\n"
        + "bob,Acme,,2026-03-03,Travel,Train,30,usd,Corporate Card,,,approved\n"
        + "bob,Acme,,2026-03-03,Travel,Train,abc,usd,Corporate Card,,,\n"
    )
    result = _service(expenses=expenses).import_expenses(ADMIN, body.encode())

    assert result.success_count == 2
    assert result.error_count == 1
    statuses = [status for _, _, status in expenses.created]
    assert statuses == [ExpenseStatus.DRAFT, ExpenseStatus.APPROVED]
    assert expenses.created[0][1].currency == "USD"
    assert expenses.created[0][1].amount == Decimal("12.40")


def test_expense_import_rejects_unknown_status():
    body = EXPENSE_HEADER + "alice,Acme,,2026-03-02,Travel,Taxi,12.40,,Corporate Card,,,Paid\n"
    result = _service().import_expenses(ADMIN, body.encode())
    assert result.error_count == 1
    assert "Paid" in result.errors[0]


def test_dropdown_import_upper_cases_and_skips_existing():
    dropdowns = InMemoryDropdowns(("TASK", "PHASE", "Design"))
    body = (
        "category,subcategory,itemvalue,displayorder,isactive,nonbillable\n"
        "task,phase,Design,1,true,false\n"
        "task,client,Internal,2,true,true\n"
        "expense,vendor,Delta,x,true,false\n"
    )
    result = _service(dropdowns=dropdowns).import_dropdown_values(ADMIN, body.encode())

    assert result.success_count == 1
    assert result.duplicate_count == 1
    assert result.error_count == 1
    internal = dropdowns.find(category="TASK", subcategory="CLIENT", item_value="Internal")
    assert internal.non_billable is True
    assert internal.display_order == 2


def test_oversized_expense_amount_fails_only_its_own_line():
    lines = [f"alice,Acme,,2026-03-{day:02d},Travel,Taxi {day},12.40,,Corporate Card,,,\n" for day in range(1, 10)]
    lines.insert(4, "alice,Acme,,2026-03-15,Travel,Charter jet,1e30,,Corporate Card,,,\n")
    expenses = InMemoryExpenses()

    result = _service(expenses=expenses).import_expenses(ADMIN, (EXPENSE_HEADER + "".join(lines)).encode())

    assert (result.success_count, result.error_count) == (9, 1)
    assert result.errors[0].startswith("Line 6:")
    assert len(expenses.created) == 9


def test_dropdown_import_rejects_unknown_category():
    dropdowns = InMemoryDropdowns()
    body = (
        "category,subcategory,itemvalue,displayorder,isactive,nonbillable\n"
        "invoice,client,Acme,1,true,false\n"
        "expense,vendor,Delta,1,true,false\n"
    )
    result = _service(dropdowns=dropdowns).import_dropdown_values(ADMIN, body.encode())

    assert result.success_count == 1
    assert result.errors == ["Line 2: Invalid category: INVOICE (expected TASK or EXPENSE)"]
    assert dropdowns.find(category="INVOICE", subcategory="CLIENT", item_value="Acme") is None
