from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..common.datetime_utils import require_date, today, week_bounds
from ..common.validators import (
    optional_text,
    parse_decimal,
    require_max_length,
    require_non_empty,
    require_range,
    to_cents,
)
from ..core.constants import (
    DEFAULT_CURRENCY,
    DEFAULT_PAGE_SIZE,
    EXPENSE_SHORT_FIELD_MAX_LENGTH,
    MAX_EXPENSE_AMOUNT,
    MAX_PAGE_SIZE,
    MIN_EXPENSE_AMOUNT,
    NOTES_MAX_LENGTH,
    TEXT_MAX_LENGTH,
    VENDOR_MAX_LENGTH,
)
from ..core.enums import ExpenseStatus
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, StorageError, ValidationError
from ..notifications.email_service import EmailService
from ..receipts.storage import ReceiptStorage
from ..roles.service import PermissionService
from ..security.permissions import EXPENSE, Principal, permission
from ..users.repository import UserRepository
from .model import Expense, ExpenseFilter, ExpenseInput, ExpensePage, StatusChange
from .repository import ExpenseRepository
from .workflow import PENDING_STATUSES, is_editable, require_transition

logger = logging.getLogger(__name__)

CREATE = permission(EXPENSE, "CREATE")
READ = permission(EXPENSE, "READ")
READ_ALL = permission(EXPENSE, "READ_ALL")
UPDATE = permission(EXPENSE, "UPDATE")
DELETE = permission(EXPENSE, "DELETE")
SUBMIT = permission(EXPENSE, "SUBMIT")
APPROVE = permission(EXPENSE, "APPROVE")
REJECT = permission(EXPENSE, "REJECT")
MARK_REIMBURSED = permission(EXPENSE, "MARK_REIMBURSED")


def build_expense_input(
    *,
    client: Optional[str],
    expense_date: Any,
    expense_type: Optional[str],
    description: Optional[str],
    amount: Any,
    payment_method: Optional[str],
    currency: Optional[str] = None,
    project: Optional[str] = None,
    vendor: Optional[str] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> ExpenseInput:
    if not isinstance(expense_date, date):
        expense_date = require_date(expense_date, "expenseDate")
    currency = (optional_text(currency) or DEFAULT_CURRENCY).upper()
    if len(currency) != 3:
        raise ValidationError("Currency code must be 3 characters", {"currency": "expected ISO code"})
    short = EXPENSE_SHORT_FIELD_MAX_LENGTH
    return ExpenseInput(
        client=require_max_length(require_non_empty(client, "client"), "client", short),
        project=require_max_length(optional_text(project), "project", short),
        expense_date=expense_date,
        expense_type=require_max_length(require_non_empty(expense_type, "expenseType"), "expenseType", short),
        description=require_max_length(require_non_empty(description, "description"), "description",
                                       TEXT_MAX_LENGTH),
        amount=to_cents(
            require_range(parse_decimal(amount, "amount"), "amount", MIN_EXPENSE_AMOUNT, MAX_EXPENSE_AMOUNT),
            "amount",
        ),
        currency=currency,
        payment_method=require_max_length(require_non_empty(payment_method, "paymentMethod"), "paymentMethod",
                                          short),
        vendor=require_max_length(optional_text(vendor), "vendor", VENDOR_MAX_LENGTH),
        reference_number=require_max_length(optional_text(reference_number), "referenceNumber", short),
        notes=require_max_length(optional_text(notes), "notes", NOTES_MAX_LENGTH),
    )


def expense_input_from_payload(payload: dict) -> ExpenseInput:
    return build_expense_input(
        client=payload.get("client"),
        expense_date=payload.get("expenseDate"),
        expense_type=payload.get("expenseType"),
        description=payload.get("description"),
        amount=payload.get("amount"),
        payment_method=payload.get("paymentMethod"),
        currency=payload.get("currency"),
        project=payload.get("project"),
        vendor=payload.get("vendor"),
        reference_number=payload.get("referenceNumber"),
        notes=payload.get("notes"),
    )


def missing_mandatory_fields(expense: Expense) -> list[str]:
    required = {
        "client": expense.client,
        "expenseDate": expense.expense_date,
        "expenseType": expense.expense_type,
        "description": expense.description,
        "amount": expense.amount,
        "currency": expense.currency,
        "paymentMethod": expense.payment_method,
    }
    return [name for name, value in required.items() if value is None or (isinstance(value, str) and not value.strip())]


class ExpenseService:
    """Use case: expense entry and the approval / reimbursement workflow."""

    def __init__(
        self,
        expenses: ExpenseRepository,
        users: UserRepository,
        permissions: PermissionService,
        *,
        email: Optional[EmailService] = None,
        receipts: Optional[ReceiptStorage] = None,
    ):
        self._expenses = expenses
        self._users = users
        self._permissions = permissions
        self._email = email
        self._receipts = receipts

    # -------- Helpers --------
    def _load(self, expense_id: int) -> Expense:
        expense = self._expenses.get_by_id(int(expense_id))
        if not expense:
            raise NotFoundError(f"Expense not found with id: {expense_id}")
        return expense

    def _load_owned(self, principal: Principal, expense_id: int) -> Expense:
        expense = self._load(expense_id)
        principal.require_owner(expense.username, EXPENSE)
        return expense

    def _scope(self, principal: Principal, requested: Optional[str]) -> Optional[str]:
        if principal.can_access_all(EXPENSE):
            return optional_text(requested)
        return principal.username

    def _move(self, expense: Expense, target: ExpenseStatus, actor: str,
              change: Optional[StatusChange] = None) -> Expense:
        require_transition(expense.expense_status, target)
        moved = self._expenses.update_status(
            expense.expense_id,
            expected_status=expense.status,
            new_status=target,
            modified_by=actor,
            change=change,
        )
        if not moved:
            raise ConflictError("Expense status was changed by another request, please reload")
        logger.info("Expense %s: %s -> %s by %s", expense.expense_id, expense.expense_status, target.value, actor)
        return self._load(expense.expense_id)

    def _reject_self_review(self, principal: Principal, expense: Expense, verb: str) -> None:
        if expense.username == principal.username:
            raise AuthorizationError(f"You cannot {verb} your own expense")

    def _approver_emails(self) -> list[str]:
        return [
            u.email
            for u in self._users.list_users()
            if u.email and u.enabled and APPROVE in self._permissions.permissions_for_role(u.role)
        ]

    def _notify_owner(self, expense: Expense, actor: str, notes: Optional[str]) -> None:
        if not self._email:
            return
        owner = self._users.get_by_username(expense.username)
        self._email.send_expense_status_changed(
            owner.email if owner else None,
            expense_id=expense.expense_id,
            description=expense.description,
            status=expense.expense_status,
            actor=actor,
            notes=notes,
        )

    # -------- Entry --------
    def create_expense(self, principal: Principal, fields: ExpenseInput, username: Optional[str] = None) -> Expense:
        principal.require(CREATE)
        owner = optional_text(username) or principal.username
        if owner != principal.username and not principal.can_access_all(EXPENSE):
            raise AuthorizationError("Access denied: you can only create your own expenses")
        expense_id = self._expenses.create(username=owner, fields=fields, modified_by=principal.username)
        logger.info("Expense %s created for %s by %s", expense_id, owner, principal.username)
        return self._load(expense_id)

    def get_expense(self, principal: Principal, expense_id: int) -> Expense:
        principal.require(READ)
        return self._load_owned(principal, expense_id)

    def update_expense(self, principal: Principal, expense_id: int, fields: ExpenseInput) -> Expense:
        principal.require(UPDATE)
        expense = self._load_owned(principal, expense_id)
        if not is_editable(expense.expense_status):
            raise ConflictError(f"Expenses in status {expense.expense_status} cannot be edited")

        status = expense.status
        if status is ExpenseStatus.REJECTED:
            status = require_transition(status, ExpenseStatus.RESUBMITTED)
        self._expenses.update_details(expense.expense_id, fields=fields, status=status, modified_by=principal.username)
        logger.info("Expense %s updated by %s", expense.expense_id, principal.username)
        return self._load(expense.expense_id)

    def delete_expense(self, principal: Principal, expense_id: int) -> None:
        principal.require(DELETE)
        expense = self._load_owned(principal, expense_id)
        if expense.status is not ExpenseStatus.DRAFT:
            raise ConflictError("Only Draft expenses can be deleted")

        self._expenses.delete(expense.expense_id)
        logger.info("Expense %s deleted by %s", expense.expense_id, principal.username)
        if expense.receipt_path and self._receipts:
            try:
                self._receipts.delete(expense.receipt_path)
            except StorageError as e:
                logger.warning("Receipt %s of deleted expense %s was not removed: %s",
                               expense.receipt_path, expense.expense_id, e)

    # -------- Workflow --------
    def submit_expense(self, principal: Principal, expense_id: int) -> Expense:
        principal.require(SUBMIT)
        expense = self._load(expense_id)
        if expense.username != principal.username:
            raise AuthorizationError("You can only submit your own expenses")
        missing = missing_mandatory_fields(expense)
        if missing:
            raise ValidationError(
                "Expense is missing required fields: " + ", ".join(missing),
                {name: "required" for name in missing},
            )

        if expense.status is ExpenseStatus.REJECTED:
            expense = self._move(expense, ExpenseStatus.RESUBMITTED, principal.username)
        expense = self._move(expense, ExpenseStatus.SUBMITTED, principal.username)

        if self._email:
            self._email.send_expense_submitted(
                self._approver_emails(),
                expense_id=expense.expense_id,
                username=expense.username,
                description=expense.description,
                amount=expense.amount,
                currency=expense.currency,
            )
        return expense

    def approve_expense(self, principal: Principal, expense_id: int, notes: Optional[str] = None) -> Expense:
        principal.require(APPROVE)
        expense = self._load(expense_id)
        self._reject_self_review(principal, expense, "approve")
        notes = require_max_length(optional_text(notes), "notes", NOTES_MAX_LENGTH)
        expense = self._move(
            expense,
            ExpenseStatus.APPROVED,
            principal.username,
            StatusChange(approved_by=principal.username, approval_date=today(), approval_notes=notes),
        )
        self._notify_owner(expense, principal.username, notes)
        return expense

    def reject_expense(self, principal: Principal, expense_id: int, notes: Optional[str]) -> Expense:
        principal.require(APPROVE, REJECT)
        notes = require_max_length(require_non_empty(notes, "notes"), "notes", NOTES_MAX_LENGTH)
        expense = self._load(expense_id)
        self._reject_self_review(principal, expense, "reject")
        expense = self._move(
            expense,
            ExpenseStatus.REJECTED,
            principal.username,
            StatusChange(approved_by=principal.username, approval_date=today(), approval_notes=notes),
        )
        self._notify_owner(expense, principal.username, notes)
        return expense

    def mark_as_reimbursed(self, principal: Principal, expense_id: int, amount: Any,
                           notes: Optional[str] = None) -> Expense:
        principal.require(APPROVE, MARK_REIMBURSED)
        reimbursed = to_cents(
            require_range(parse_decimal(amount, "reimbursedAmount"), "reimbursedAmount", MIN_EXPENSE_AMOUNT,
                          MAX_EXPENSE_AMOUNT),
            "reimbursedAmount",
        )
        notes = require_max_length(optional_text(notes), "notes", NOTES_MAX_LENGTH)
        expense = self._load(expense_id)
        self._reject_self_review(principal, expense, "reimburse")
        expense = self._move(
            expense,
            ExpenseStatus.REIMBURSED,
            principal.username,
            StatusChange(
                reimbursed_amount=reimbursed,
                reimbursement_date=today(),
                reimbursement_notes=notes,
            ),
        )
        self._notify_owner(expense, principal.username, notes)
        return expense

    # -------- Queries --------
    def search_expenses(self, principal: Principal, criteria: ExpenseFilter, *, page: int = 0,
                        size: int = DEFAULT_PAGE_SIZE) -> ExpensePage:
        principal.require(READ)
        page = max(0, int(page))
        size = min(max(1, int(size)), MAX_PAGE_SIZE)
        if criteria.start_date and criteria.end_date and criteria.start_date > criteria.end_date:
            raise ValidationError("startDate must be on or before endDate", {"startDate": "after endDate"})
        scoped = ExpenseFilter(
            username=self._scope(principal, criteria.username),
            client=optional_text(criteria.client),
            project=optional_text(criteria.project),
            expense_type=optional_text(criteria.expense_type),
            status=optional_text(criteria.status),
            payment_method=optional_text(criteria.payment_method),
            start_date=criteria.start_date,
            end_date=criteria.end_date,
        )
        items, total = self._expenses.search(scoped, offset=page * size, limit=size)
        return ExpensePage(items=items, total=total, page=page, size=size)

    def current_week(self, principal: Principal, *, on: Optional[date] = None) -> Sequence[Expense]:
        principal.require(READ)
        start, end = week_bounds(on or today())
        items, _ = self._expenses.search(ExpenseFilter(username=principal.username, start_date=start, end_date=end))
        return items

    def pending_approvals(self, principal: Principal) -> Sequence[Expense]:
        principal.require(READ_ALL)
        return self._expenses.list_by_statuses(PENDING_STATUSES)

    def total_amount(self, principal: Principal, *, start_date: Optional[date] = None,
                     end_date: Optional[date] = None, username: Optional[str] = None) -> Decimal:
        principal.require(READ)
        return self._expenses.total_amount(
            username=self._scope(principal, username), start_date=start_date, end_date=end_date
        )

    def totals_by_status(self, principal: Principal, username: Optional[str] = None) -> dict[str, Decimal]:
        principal.require(READ)
        totals = self._expenses.totals_by_status(username=self._scope(principal, username))
        return {status.value: totals.get(status.value, Decimal("0")) for status in ExpenseStatus}
