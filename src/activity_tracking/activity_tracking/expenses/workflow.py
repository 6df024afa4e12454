"""Expense approval state machine.

Draft goes to Submitted. A Submitted expense is Approved or Rejected. A Rejected
expense is Resubmitted and then Submitted again. Approved expenses end as
Reimbursed, which is terminal.
"""
from __future__ import annotations

from typing import Union

from ..core.enums import ExpenseStatus
from ..core.exceptions import ConflictError

TRANSITIONS: dict[ExpenseStatus, frozenset[ExpenseStatus]] = {
    ExpenseStatus.DRAFT: frozenset({ExpenseStatus.SUBMITTED}),
    ExpenseStatus.SUBMITTED: frozenset({ExpenseStatus.APPROVED, ExpenseStatus.REJECTED}),
    ExpenseStatus.REJECTED: frozenset({ExpenseStatus.RESUBMITTED}),
    ExpenseStatus.RESUBMITTED: frozenset({ExpenseStatus.SUBMITTED}),
    ExpenseStatus.APPROVED: frozenset({ExpenseStatus.REIMBURSED}),
    ExpenseStatus.REIMBURSED: frozenset(),
}

# States in which the owner may still change the expense details.
EDITABLE_STATUSES = frozenset({ExpenseStatus.DRAFT, ExpenseStatus.REJECTED, ExpenseStatus.RESUBMITTED})

# Only Submitted expenses can be approved or rejected.
PENDING_STATUSES = (ExpenseStatus.SUBMITTED,)

StatusLike = Union[ExpenseStatus, str]


def to_status(value: StatusLike) -> ExpenseStatus:
    if isinstance(value, ExpenseStatus):
        return value
    for status in ExpenseStatus:
        if status.value.lower() == str(value).strip().lower():
            return status
    raise ValueError(f"Unknown expense status: {value!r}")


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    return to_status(target) in TRANSITIONS[to_status(current)]


def require_transition(current: StatusLike, target: StatusLike) -> ExpenseStatus:
    current, target = to_status(current), to_status(target)
    if target not in TRANSITIONS[current]:
        raise ConflictError(f"Cannot change expense status from {current.value} to {target.value}")
    return target


def is_editable(status: StatusLike) -> bool:
    return to_status(status) in EDITABLE_STATUSES
