from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import format_date, format_datetime


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object (no DB access code).
    """

    user_id: int
    username: str
    firstname: Optional[str]
    lastname: str
    company: Optional[str]
    email: Optional[str]
    password_hash: str
    role: str
    enabled: bool = True
    force_password_update: bool = False
    expiration_date: Optional[date] = None
    failed_login_attempts: int = 0
    account_locked: bool = False
    created_date: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.firstname, self.lastname) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "username": self.username,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "company": self.company,
            "email": self.email,
            "role": self.role,
            "enabled": self.enabled,
            "forcePasswordUpdate": self.force_password_update,
            "expirationDate": format_date(self.expiration_date),
            "failedLoginAttempts": self.failed_login_attempts,
            "accountLocked": self.account_locked,
            "createdDate": format_datetime(self.created_date),
            "lastLogin": format_datetime(self.last_login),
        }
