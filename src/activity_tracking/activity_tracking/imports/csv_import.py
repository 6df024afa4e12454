"""Bulk CSV import of task activities, expenses and dropdown values.

Rows are independent: a bad row is reported as ``Line N: ...`` and skipped,
rows already present are counted as duplicates, and everything else is
inserted. Nothing is rolled back when a later row fails.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from ..common.datetime_utils import parse_flexible_date
from ..common.validators import optional_text, parse_bool, require_non_empty
from ..core.constants import MAX_IMPORT_BYTES
from ..core.enums import ExpenseStatus
from ..core.exceptions import ConflictError, DomainError, ValidationError
from ..dropdowns.model import CLIENT, EXPENSE, EXPENSE_TYPE, PAYMENT_METHOD, PHASE, PROJECT, TASK
from ..dropdowns.repository import DropdownRepository
from ..dropdowns.service import DropdownValueService
from ..expenses.repository import ExpenseRepository
from ..expenses.service import build_expense_input
from ..expenses.workflow import to_status
from ..security.permissions import EXPENSE as EXPENSE_RESOURCE
from ..security.permissions import TASK_ACTIVITY, USER_MANAGEMENT, Principal, permission
from ..tasks.repository import TaskActivityRepository
from ..tasks.service import build_task_input
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)

_HEADER_NOISE = re.compile(r"[_\s-]")

TEMPLATES: dict[str, dict] = {
    "taskactivities": {
        "headers": ["taskdate", "client", "project", "phase", "taskhours", "details", "username"],
        "optionalHeaders": ["taskid", "taskname"],
        "example": ["2026-01-15", "Corporate", "General Administration", "Meeting", "1.5",
                    "Weekly status meeting", "jdoe"],
        "formats": {
            "taskdate": "YYYY-MM-DD, MM/DD/YYYY, M/D/YYYY or DD-Mon-YYYY",
            "taskhours": "decimal between 0.01 and 24.00",
            "username": "existing username; blank means the importing user",
        },
    },
    "expenses": {
        "headers": ["username", "client", "project", "expense_date", "expense_type", "description", "amount",
                    "currency", "payment_method", "vendor", "reference_number", "expense_status"],
        "optionalHeaders": [],
        "example": ["jdoe", "Corporate", "General Administration", "2026-01-15", "Travel - Airfare",
                    "Flight to client site", "425.50", "USD", "Corporate Credit Card", "Delta", "ABC123", "Draft"],
        "formats": {
            "expense_date": "YYYY-MM-DD, MM/DD/YYYY, M/D/YYYY or DD-Mon-YYYY",
            "amount": "decimal between 0.01 and 99999999.99",
            "currency": "3-letter ISO code, defaults to USD",
            "expense_status": "Draft, Submitted, Approved, Rejected, Resubmitted or Reimbursed; defaults to Draft",
        },
    },
    "dropdownvalues": {
        "headers": ["category", "subcategory", "itemvalue", "displayorder", "isactive"],
        "optionalHeaders": ["nonbillable"],
        "example": ["TASK", "PHASE", "Design", "10", "true"],
        "formats": {
            "category": "TASK or EXPENSE (upper-cased on import)",
            "displayorder": "integer, defaults to 0",
            "isactive": "true/false, defaults to true",
        },
    },
}


@dataclass
class CsvImportResult:
    processed_count: int = 0
    success_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    errors: list[str] = field(default_factory=list)

    def add_error(self, line_number: int, message: str) -> None:
        self.error_count += 1
        self.errors.append(f"Line {line_number}: {message}")

    def to_dict(self) -> dict:
        return {
            "processedCount": self.processed_count,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "duplicateCount": self.duplicate_count,
            "errors": list(self.errors),
        }


def normalize_header(name: str) -> str:
    return _HEADER_NOISE.sub("", (name or "").strip().lower())


def decode_csv(content: bytes) -> str:
    """UTF-8 (with or without BOM), falling back to Windows-1252."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("CSV is not valid UTF-8, decoding as windows-1252")
        return content.decode("cp1252", errors="replace")


def iter_records(content: bytes) -> Iterator[tuple[int, dict[str, str]]]:
    """Yield ``(record_number, row)`` with normalised header keys.

    The header is record 1. Blank records are skipped but still counted.
    """
    reader = csv.reader(io.StringIO(decode_csv(content), newline=""))
    headers: Optional[list[str]] = None
    for number, values in enumerate(reader, start=1):
        if not any(v.strip() for v in values):
            continue
        if headers is None:
            headers = [normalize_header(h) for h in values]
            continue
        yield number, {h: v.strip() for h, v in zip(headers, values) if h}


def _first(row: dict[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        value = optional_text(row.get(key))
        if value is not None:
            return value
    return None


def _date(row: dict[str, str], *keys: str):
    raw = _first(row, *keys)
    if raw is None:
        raise ValidationError(f"{keys[0]} is required")
    try:
        return parse_flexible_date(raw)
    except ValueError:
        raise ValidationError(f"Unable to parse date: {raw}")


class CsvImportService:
    def __init__(
        self,
        tasks: TaskActivityRepository,
        expenses: ExpenseRepository,
        dropdowns: DropdownRepository,
        users: UserRepository,
        *,
        max_bytes: int = MAX_IMPORT_BYTES,
    ):
        self._tasks = tasks
        self._expenses = expenses
        self._dropdowns = dropdowns
        self._dropdown_values = DropdownValueService(dropdowns)
        self._users = users
        self._max_bytes = int(max_bytes)

    def _check_size(self, content: bytes) -> None:
        if not content:
            raise ValidationError("CSV file is empty", {"file": "empty"})
        if len(content) > self._max_bytes:
            raise ValidationError(
                f"File size exceeds maximum of {self._max_bytes // (1024 * 1024)}MB",
                {"file": "too large"},
            )

    def _user_checker(self) -> Callable[[str], bool]:
        known: dict[str, bool] = {}

        def exists(username: str) -> bool:
            if username not in known:
                known[username] = self._users.get_by_username(username) is not None
            return known[username]

        return exists

    def _reference_checker(self, category: str) -> Callable[[str, Optional[str], str], None]:
        cache: dict[str, set[str]] = {}

        def check(subcategory: str, value: Optional[str], label: str) -> None:
            if value is None:
                return
            if subcategory not in cache:
                cache[subcategory] = set(self._dropdown_values.active_values(category, subcategory))
            if value not in cache[subcategory]:
                raise ValidationError(f"{label} '{value}' is not a valid {category.lower()} {label.lower()}")

        return check

    def _run(self, label: str, content: bytes, handle_row: Callable[[dict[str, str]], bool]) -> CsvImportResult:
        self._check_size(content)
        result = CsvImportResult()
        for number, row in iter_records(content):
            try:
                created = handle_row(row)
            except ConflictError:
                result.processed_count += 1
                result.duplicate_count += 1
                continue
            except (DomainError, ValueError) as e:
                result.add_error(number, str(e))
                logger.debug("%s import line %s rejected: %s", label, number, e)
                continue
            result.processed_count += 1
            if created:
                result.success_count += 1
            else:
                result.duplicate_count += 1

        logger.info(
            "%s import finished: %s processed, %s imported, %s duplicates, %s errors",
            label,
            result.processed_count,
            result.success_count,
            result.duplicate_count,
            result.error_count,
        )
        return result

    def import_task_activities(self, principal: Principal, content: bytes) -> CsvImportResult:
        principal.require(permission(TASK_ACTIVITY, "CREATE"), permission(TASK_ACTIVITY, "READ_ALL"))
        user_exists = self._user_checker()
        check_reference = self._reference_checker(TASK)

        def handle(row: dict[str, str]) -> bool:
            fields = build_task_input(
                task_date=_date(row, "taskdate"),
                client=_first(row, "client"),
                project=_first(row, "project"),
                phase=_first(row, "phase"),
                hours=_first(row, "taskhours", "hours"),
                details=_first(row, "details"),
                task_id=_first(row, "taskid"),
                task_name=_first(row, "taskname"),
            )
            check_reference(CLIENT, fields.client, "Client")
            check_reference(PROJECT, fields.project, "Project")
            check_reference(PHASE, fields.phase, "Phase")
            username = _first(row, "username") or principal.username
            if not user_exists(username):
                raise ValidationError(f"Unknown username: {username}")
            if self._tasks.exists_duplicate(username=username, fields=fields):
                return False
            self._tasks.create(username=username, fields=fields)
            return True

        return self._run("Task activity", content, handle)

    def import_expenses(self, principal: Principal, content: bytes) -> CsvImportResult:
        principal.require(permission(EXPENSE_RESOURCE, "CREATE"), permission(EXPENSE_RESOURCE, "READ_ALL"))
        user_exists = self._user_checker()
        check_reference = self._reference_checker(EXPENSE)

        def handle(row: dict[str, str]) -> bool:
            fields = build_expense_input(
                client=_first(row, "client"),
                project=_first(row, "project"),
                expense_date=_date(row, "expensedate"),
                expense_type=_first(row, "expensetype"),
                description=_first(row, "description"),
                amount=_first(row, "amount"),
                currency=_first(row, "currency"),
                payment_method=_first(row, "paymentmethod"),
                vendor=_first(row, "vendor"),
                reference_number=_first(row, "referencenumber"),
            )
            check_reference(CLIENT, fields.client, "Client")
            check_reference(PROJECT, fields.project, "Project")
            check_reference(EXPENSE_TYPE, fields.expense_type, "Expense type")
            check_reference(PAYMENT_METHOD, fields.payment_method, "Payment method")
            username = require_non_empty(_first(row, "username"), "username")
            if not user_exists(username):
                raise ValidationError(f"Unknown username: {username}")
            status = to_status(_first(row, "expensestatus") or ExpenseStatus.DRAFT.value)
            if self._expenses.exists_duplicate(username=username, fields=fields):
                return False
            self._expenses.create(username=username, fields=fields, status=status, modified_by=principal.username)
            return True

        return self._run("Expense", content, handle)

    def import_dropdown_values(self, principal: Principal, content: bytes) -> CsvImportResult:
        principal.require(permission(USER_MANAGEMENT, "CREATE"))

        def handle(row: dict[str, str]) -> bool:
            category = require_non_empty(_first(row, "category"), "category").upper()
            if category not in (TASK, EXPENSE):
                raise ValidationError(f"Invalid category: {category} (expected TASK or EXPENSE)")
            subcategory = require_non_empty(_first(row, "subcategory"), "subcategory").upper()
            item_value = require_non_empty(_first(row, "itemvalue"), "itemvalue")
            order = _first(row, "displayorder")
            try:
                display_order = int(order) if order else 0
            except ValueError:
                raise ValidationError(f"Invalid display order: {order}")
            if self._dropdowns.find(category=category, subcategory=subcategory, item_value=item_value):
                return False
            self._dropdowns.create(
                category=category,
                subcategory=subcategory,
                item_value=item_value,
                display_order=display_order,
                is_active=parse_bool(_first(row, "isactive"), default=True),
                non_billable=parse_bool(_first(row, "nonbillable")),
            )
            return True

        return self._run("Dropdown value", content, handle)
