from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Built-in roles. Additional roles may be created at runtime."""

    ADMIN = "ADMIN"
    USER = "USER"
    GUEST = "GUEST"
    EXPENSE_ADMIN = "EXPENSE_ADMIN"


class ExpenseStatus(str, Enum):
    """Expense approval workflow states as stored in the database."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    RESUBMITTED = "Resubmitted"
    REIMBURSED = "Reimbursed"


class ReceiptStatus(str, Enum):
    MISSING = "Receipt Missing"
    ATTACHED = "Receipt Attached"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
