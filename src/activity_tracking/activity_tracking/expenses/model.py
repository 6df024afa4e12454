from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..common.datetime_utils import format_date, format_datetime
from ..core.enums import ExpenseStatus, ReceiptStatus


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class Expense:
    expense_id: int
    username: str
    client: str
    project: Optional[str]
    expense_date: date
    expense_type: str
    description: str
    amount: Decimal
    currency: str
    payment_method: str
    vendor: Optional[str] = None
    reference_number: Optional[str] = None
    receipt_path: Optional[str] = None
    receipt_status: str = ReceiptStatus.MISSING.value
    expense_status: str = ExpenseStatus.DRAFT.value
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    approval_notes: Optional[str] = None
    reimbursed_amount: Optional[Decimal] = None
    reimbursement_date: Optional[date] = None
    reimbursement_notes: Optional[str] = None
    notes: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    last_modified_by: Optional[str] = None

    @property
    def status(self) -> ExpenseStatus:
        return ExpenseStatus(self.expense_status)

    def to_dict(self) -> dict:
        return {
            "id": self.expense_id,
            "username": self.username,
            "client": self.client,
            "project": self.project,
            "expenseDate": format_date(self.expense_date),
            "expenseType": self.expense_type,
            "description": self.description,
            "amount": _money(self.amount),
            "currency": self.currency,
            "paymentMethod": self.payment_method,
            "vendor": self.vendor,
            "referenceNumber": self.reference_number,
            "receiptPath": self.receipt_path,
            "receiptStatus": self.receipt_status,
            "expenseStatus": self.expense_status,
            "approvedBy": self.approved_by,
            "approvalDate": format_date(self.approval_date),
            "approvalNotes": self.approval_notes,
            "reimbursedAmount": _money(self.reimbursed_amount),
            "reimbursementDate": format_date(self.reimbursement_date),
            "reimbursementNotes": self.reimbursement_notes,
            "notes": self.notes,
            "createdDate": format_datetime(self.created_date),
            "lastModified": format_datetime(self.last_modified),
            "lastModifiedBy": self.last_modified_by,
        }


@dataclass(frozen=True)
class ExpenseInput:
    """User-editable expense fields. Workflow fields are never part of it."""

    client: str
    expense_date: date
    expense_type: str
    description: str
    amount: Decimal
    payment_method: str
    currency: str = "USD"
    project: Optional[str] = None
    vendor: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ExpenseFilter:
    username: Optional[str] = None
    client: Optional[str] = None
    project: Optional[str] = None
    expense_type: Optional[str] = None
    status: Optional[str] = None
    payment_method: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class ExpensePage:
    items: Sequence[Expense]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.size - 1) // self.size if self.size else 0

    def to_dict(self) -> dict:
        return {
            "content": [e.to_dict() for e in self.items],
            "totalElements": self.total,
            "totalPages": self.total_pages,
            "page": self.page,
            "size": self.size,
        }


@dataclass(frozen=True)
class StatusChange:
    """Workflow columns written together with a status transition."""

    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    approval_notes: Optional[str] = None
    reimbursed_amount: Optional[Decimal] = None
    reimbursement_date: Optional[date] = None
    reimbursement_notes: Optional[str] = None

    def columns(self) -> dict:
        values = {
            "approved_by": self.approved_by,
            "approval_date": self.approval_date,
            "approval_notes": self.approval_notes,
            "reimbursed_amount": self.reimbursed_amount,
            "reimbursement_date": self.reimbursement_date,
            "reimbursement_notes": self.reimbursement_notes,
        }
        return {k: v for k, v in values.items() if v is not None}
