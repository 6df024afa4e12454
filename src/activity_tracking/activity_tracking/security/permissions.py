"""Permission strings and the built-in role catalogue.

A permission string is ``RESOURCE:ACTION`` (e.g. ``EXPENSE:APPROVE``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..core.enums import Role
from ..core.exceptions import AuthorizationError

TASK_ACTIVITY = "TASK_ACTIVITY"
USER_MANAGEMENT = "USER_MANAGEMENT"
REPORTS = "REPORTS"
EXPENSE = "EXPENSE"

PERMISSION_CATALOGUE: dict[str, tuple[str, ...]] = {
    TASK_ACTIVITY: ("CREATE", "READ", "UPDATE", "DELETE", "READ_ALL"),
    USER_MANAGEMENT: ("CREATE", "READ", "UPDATE", "DELETE", "MANAGE_ROLES"),
    REPORTS: ("VIEW", "EXPORT"),
    EXPENSE: (
        "CREATE",
        "READ",
        "READ_ALL",
        "UPDATE",
        "DELETE",
        "SUBMIT",
        "APPROVE",
        "REJECT",
        "MARK_REIMBURSED",
        "MANAGE_RECEIPTS",
    ),
}


def permission(resource: str, action: str) -> str:
    return f"{resource.strip().upper()}:{action.strip().upper()}"


def split_permission(value: str) -> Optional[tuple[str, str]]:
    """Return (resource, action) or None for malformed strings."""
    if not value or value.count(":") != 1:
        return None
    resource, action = (part.strip() for part in value.split(":"))
    if not resource or not action:
        return None
    return resource.upper(), action.upper()


def _all(resource: str) -> list[str]:
    return [permission(resource, a) for a in PERMISSION_CATALOGUE[resource]]


ALL_PERMISSIONS: frozenset[str] = frozenset(p for r in PERMISSION_CATALOGUE for p in _all(r))

DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    Role.ADMIN.value: ALL_PERMISSIONS,
    Role.USER.value: frozenset(
        [
            "TASK_ACTIVITY:CREATE",
            "TASK_ACTIVITY:READ",
            "TASK_ACTIVITY:UPDATE",
            "TASK_ACTIVITY:DELETE",
            "USER_MANAGEMENT:READ",
            "USER_MANAGEMENT:UPDATE",
            "REPORTS:VIEW",
            "EXPENSE:CREATE",
            "EXPENSE:READ",
            "EXPENSE:UPDATE",
            "EXPENSE:DELETE",
            "EXPENSE:SUBMIT",
            "EXPENSE:MANAGE_RECEIPTS",
        ]
    ),
    Role.GUEST.value: frozenset(
        [
            "TASK_ACTIVITY:CREATE",
            "TASK_ACTIVITY:READ",
            "TASK_ACTIVITY:UPDATE",
            "TASK_ACTIVITY:DELETE",
            "REPORTS:VIEW",
        ]
    ),
    Role.EXPENSE_ADMIN.value: frozenset(
        _all(EXPENSE) + ["TASK_ACTIVITY:READ", "TASK_ACTIVITY:READ_ALL"] + _all(REPORTS)
    ),
}

ROLE_DESCRIPTIONS = {
    Role.ADMIN.value: "Full system access",
    Role.USER.value: "Standard user: own tasks and expenses",
    Role.GUEST.value: "Limited access: own task activities only",
    Role.EXPENSE_ADMIN.value: "Expense approval and reimbursement",
}


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as seen by services."""

    username: str
    role: str
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def has(self, perm: str) -> bool:
        return self.is_admin or perm in self.permissions

    def has_all(self, perms: Iterable[str]) -> bool:
        return all(self.has(p) for p in perms)

    def require(self, *perms: str) -> None:
        missing = [p for p in perms if not self.has(p)]
        if missing:
            raise AuthorizationError(f"Access denied: requires {', '.join(missing)}")

    def can_access_all(self, resource: str) -> bool:
        """Admin-level bypass for owner-scoped checks on ``resource``."""
        return self.has(permission(resource, "READ_ALL"))

    def require_owner(self, owner: str, resource: str) -> None:
        if owner != self.username and not self.can_access_all(resource):
            raise AuthorizationError("Access denied: you can only access your own records")
