from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..common.datetime_utils import today as current_date
from ..core.constants import DEFAULT_PASSWORD_WARNING_DAYS
from ..core.enums import Role
from ..notifications.email_service import EmailService
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpirationRunSummary:
    checked: int
    warnings_sent: int
    expired_sent: int


class PasswordExpirationNotificationService:
    """Daily job: warn users whose password is about to expire.

    GUEST accounts, accounts without an e-mail address and disabled or locked
    accounts are skipped. A user whose password expired yesterday gets a single
    "expired" notice; one expiring within the warning window gets a reminder
    with the number of days left.
    """

    def __init__(self, users: UserRepository, email: EmailService, *,
                 warning_days: int = DEFAULT_PASSWORD_WARNING_DAYS):
        self._users = users
        self._email = email
        self._warning_days = int(warning_days)

    def run(self, today: Optional[date] = None) -> ExpirationRunSummary:
        today = today or current_date()
        yesterday = today - timedelta(days=1)
        horizon = today + timedelta(days=self._warning_days)

        checked = warnings = expired = 0
        for user in self._users.list_users():
            if user.role == Role.GUEST.value or not user.email:
                continue
            if not user.enabled or user.account_locked or not user.expiration_date:
                continue
            checked += 1

            if user.expiration_date == yesterday:
                if self._email.send_password_expired(user.email, username=user.username):
                    expired += 1
            elif today <= user.expiration_date <= horizon:
                days_left = (user.expiration_date - today).days
                if self._email.send_password_expiring(user.email, username=user.username, days_left=days_left):
                    warnings += 1

        logger.info(
            "Password expiration check: %s users checked, %s warnings, %s expired notices",
            checked, warnings, expired,
        )
        return ExpirationRunSummary(checked=checked, warnings_sent=warnings, expired_sent=expired)
