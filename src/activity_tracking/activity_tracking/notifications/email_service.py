"""Outbound e-mail notifications.

Delivery is best effort: failures are logged and reported as ``False`` so a
notification problem never fails the business operation that triggered it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from email.message import EmailMessage
from typing import Iterable, Optional

import aiosmtplib

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailSettings:
    enabled: bool = False
    host: str = "localhost"
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    from_address: str = "noreply@activitytracking.local"
    admin_email: Optional[str] = None
    app_url: str = "http://localhost:5000"

    @classmethod
    def from_settings(cls, settings) -> "MailSettings":
        return cls(
            enabled=bool(getattr(settings, "MAIL_ENABLED", False)),
            host=str(getattr(settings, "MAIL_HOST", "localhost")),
            port=int(getattr(settings, "MAIL_PORT", 587)),
            username=getattr(settings, "MAIL_USERNAME", None) or None,
            password=getattr(settings, "MAIL_PASSWORD", None) or None,
            use_tls=bool(getattr(settings, "MAIL_USE_TLS", True)),
            from_address=str(getattr(settings, "MAIL_FROM", cls.from_address)),
            admin_email=getattr(settings, "ADMIN_EMAIL", None) or None,
            app_url=str(getattr(settings, "APP_URL", cls.app_url)),
        )


class EmailService:
    def __init__(self, settings: MailSettings):
        self._settings = settings

    @property
    def is_enabled(self) -> bool:
        return self._settings.enabled

    def send_email(self, to: str | Iterable[str], subject: str, body: str) -> bool:
        recipients = [to] if isinstance(to, str) else [r for r in to if r]
        if not recipients:
            logger.debug("No recipients for %r, skipping", subject)
            return False
        if not self._settings.enabled:
            logger.info("Mail disabled, not sending %r to %s", subject, ", ".join(recipients))
            return False

        message = EmailMessage()
        message["From"] = self._settings.from_address
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(body)

        try:
            asyncio.run(
                aiosmtplib.send(
                    message,
                    hostname=self._settings.host,
                    port=self._settings.port,
                    username=self._settings.username,
                    password=self._settings.password,
                    start_tls=self._settings.use_tls,
                )
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send %r to %s: %s", subject, ", ".join(recipients), e)
            return False

        logger.info("Sent %r to %s", subject, ", ".join(recipients))
        return True

    # -------- Expense workflow --------
    def send_expense_submitted(self, approver_emails: Iterable[str], *, expense_id: int, username: str,
                               description: str, amount: Decimal, currency: str) -> bool:
        body = (
            f"{username} submitted expense #{expense_id} for approval.\n\n"
            f"Description: {description}\n"
            f"Amount: {amount} {currency}\n\n"
            f"Review it at {self._settings.app_url}/expenses/{expense_id}\n"
        )
        return self.send_email(list(approver_emails), f"Expense #{expense_id} awaiting approval", body)

    def send_expense_status_changed(self, to: Optional[str], *, expense_id: int, description: str,
                                    status: str, actor: str, notes: Optional[str] = None) -> bool:
        if not to:
            return False
        body = f"Your expense #{expense_id} ({description}) is now {status}.\nUpdated by: {actor}\n"
        if notes:
            body += f"Notes: {notes}\n"
        return self.send_email(to, f"Expense #{expense_id} {status}", body)

    # -------- Accounts --------
    def send_account_locked(self, *, username: str, failed_attempts: int) -> bool:
        if not self._settings.admin_email:
            logger.warning("Account %s locked but no ADMIN_EMAIL configured", username)
            return False
        body = (
            f"The account '{username}' was locked after {failed_attempts} failed login attempts.\n"
            "An administrator must unlock it from user management.\n"
        )
        return self.send_email(self._settings.admin_email, f"Account locked: {username}", body)

    def send_password_expiring(self, to: str, *, username: str, days_left: int) -> bool:
        body = (
            f"Hello {username},\n\nYour password expires in {days_left} day(s). "
            f"Please change it at {self._settings.app_url}/profile.\n"
        )
        return self.send_email(to, "Your password will expire soon", body)

    def send_password_expired(self, to: str, *, username: str) -> bool:
        body = (
            f"Hello {username},\n\nYour password has expired. "
            "You will be asked to change it at your next login.\n"
        )
        return self.send_email(to, "Your password has expired", body)
