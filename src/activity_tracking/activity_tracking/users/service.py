from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local, today
from ..common.validators import optional_text, require_max_length, require_non_empty
from ..core.constants import (
    COMPANY_MAX_LENGTH,
    DEFAULT_MAX_LOGIN_ATTEMPTS,
    DEFAULT_PASSWORD_EXPIRATION_DAYS,
    DEFAULT_PASSWORD_WARNING_DAYS,
    NAME_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    PASSWORD_SPECIAL_CHARS,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from ..core.enums import Role
from ..core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..notifications.email_service import EmailService
from ..security.permissions import Principal
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"

_CONSECUTIVE = re.compile(r"(.)\1{2,}")


def validate_password_strength(password: Optional[str], username: Optional[str] = None) -> str:
    if not password:
        raise ValidationError("Password cannot be null or empty", {"password": "required"})
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if not any(c.isupper() for c in password):
        problems.append("an uppercase letter")
    if not any(c.isdigit() for c in password):
        problems.append("a digit")
    if not any(c in PASSWORD_SPECIAL_CHARS for c in password):
        problems.append(f"one of {PASSWORD_SPECIAL_CHARS}")
    if problems:
        raise ValidationError(
            "Password must contain " + ", ".join(problems),
            {"password": "does not meet strength requirements"},
        )
    if _CONSECUTIVE.search(password):
        raise ValidationError(
            "Password must not repeat the same character 3 or more times in a row",
            {"password": "repeated characters"},
        )
    if username and username.lower() in password.lower():
        raise ValidationError("Password must not contain the username", {"password": "contains username"})
    return password


def _check_password(user: User, password: str) -> bool:
    try:
        return check_password_hash(user.password_hash, password or "")
    except (ValueError, TypeError):
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


class AuthService:
    """Use case: authenticate user (login) with failed-attempt lockout."""

    def __init__(
        self,
        users: UserRepository,
        email: Optional[EmailService] = None,
        *,
        max_attempts: int = DEFAULT_MAX_LOGIN_ATTEMPTS,
    ):
        self._users = users
        self._email = email
        self._max_attempts = int(max_attempts)

    def authenticate(self, username: str, password: str) -> User:
        username = (username or "").strip()
        user = self._users.get_by_username(username) if username else None
        if not user:
            logger.info("Login failed for unknown user %r", username)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.account_locked:
            logger.warning("Login rejected for locked account %s", username)
            raise AccountLockedError("Account is locked due to too many failed login attempts. Contact an administrator.")

        if not _check_password(user, password):
            attempts = self._users.record_failed_login(user.user_id, max_attempts=self._max_attempts)
            logger.info("Login failed for %s (attempt %s/%s)", username, attempts, self._max_attempts)
            if attempts >= self._max_attempts:
                logger.warning("Account %s locked after %s failed attempts", username, attempts)
                if self._email:
                    self._email.send_account_locked(username=username, failed_attempts=attempts)
                raise AccountLockedError("Account is locked due to too many failed login attempts. Contact an administrator.")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not user.enabled:
            logger.info("Login rejected for disabled account %s", username)
            raise AuthenticationError("Account is disabled")

        if user.role == Role.GUEST.value and user.expiration_date and today() > user.expiration_date:
            raise AuthenticationError("Password has expired. Contact system administrator.")

        self._users.record_successful_login(user.user_id, at=now_local())
        logger.info("User %s logged in", username)
        return user

    def ensure_active(self, username: str) -> User:
        """Re-check an account on token refresh."""
        user = self._users.get_by_username(username)
        if not user or not user.enabled:
            raise AuthenticationError("Account is not active")
        if user.account_locked:
            raise AccountLockedError("Account is locked")
        return user


class UserService:
    """Use case: manage users and passwords."""

    def __init__(
        self,
        users: UserRepository,
        *,
        known_roles=None,
        expiration_days: int = DEFAULT_PASSWORD_EXPIRATION_DAYS,
        warning_days: int = DEFAULT_PASSWORD_WARNING_DAYS,
    ):
        self._users = users
        # Callable returning the role names that currently exist.
        self._known_roles = known_roles
        self._expiration_days = int(expiration_days)
        self._warning_days = int(warning_days)

    def _new_expiration(self) -> date:
        return today() + timedelta(days=self._expiration_days)

    def _require_role(self, role: Optional[str]) -> str:
        role = require_non_empty(role, "role").upper()
        if self._known_roles is not None and role not in set(self._known_roles()):
            raise ValidationError(f"Unknown role: {role}", {"role": "unknown role"})
        return role

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_by_username(self, username: str) -> User:
        user = self._users.get_by_username(username)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, *, username: Optional[str] = None, role: Optional[str] = None,
                   company: Optional[str] = None) -> Sequence[User]:
        return self._users.list_users(
            username=optional_text(username),
            role=(optional_text(role) or "").upper() or None,
            company=optional_text(company),
        )

    def create_user(
        self,
        *,
        username: str,
        password: str,
        lastname: str,
        role: str = Role.USER.value,
        firstname: Optional[str] = None,
        company: Optional[str] = None,
        email: Optional[str] = None,
        force_password_update: bool = True,
    ) -> int:
        username = require_non_empty(username, "username")
        if not (USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH):
            raise ValidationError(
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
                {"username": "invalid length"},
            )
        lastname = require_max_length(require_non_empty(lastname, "lastname"), "lastname", NAME_MAX_LENGTH)
        firstname = require_max_length(optional_text(firstname), "firstname", NAME_MAX_LENGTH)
        company = require_max_length(optional_text(company), "company", COMPANY_MAX_LENGTH)
        role = self._require_role(role)
        validate_password_strength(password, username)

        if self._users.get_by_username(username):
            raise ConflictError("Username already exists")

        user_id = self._users.create_user(
            username=username,
            firstname=firstname,
            lastname=lastname,
            company=company,
            email=optional_text(email),
            password_hash=generate_password_hash(password),
            role=role,
            force_password_update=bool(force_password_update),
            expiration_date=self._new_expiration(),
        )
        logger.info("Created user %s with role %s", username, role)
        return user_id

    def update_profile(self, *, user_id: int, firstname: Optional[str], lastname: str,
                       company: Optional[str], email: Optional[str]) -> User:
        user = self.get_user(user_id)
        self._users.update_profile(
            user.user_id,
            firstname=require_max_length(optional_text(firstname), "firstname", NAME_MAX_LENGTH),
            lastname=require_max_length(require_non_empty(lastname, "lastname"), "lastname", NAME_MAX_LENGTH),
            company=require_max_length(optional_text(company), "company", COMPANY_MAX_LENGTH),
            email=optional_text(email),
        )
        return self.get_user(user.user_id)

    def update_user(
        self,
        *,
        user_id: int,
        firstname: Optional[str],
        lastname: str,
        company: Optional[str],
        email: Optional[str],
        role: str,
        enabled: bool,
        account_locked: bool,
    ) -> User:
        role = self._require_role(role)
        user = self.update_profile(user_id=user_id, firstname=firstname, lastname=lastname,
                                   company=company, email=email)
        self._users.update_access(
            user.user_id,
            role=role,
            enabled=bool(enabled),
            account_locked=bool(account_locked),
        )
        if user.account_locked and not account_locked:
            logger.info("Account %s unlocked", user.username)
        return self.get_user(user.user_id)

    def delete_user(self, *, actor: Principal, user_id: int) -> None:
        user = self.get_user(user_id)
        if user.username == actor.username:
            raise ConflictError("You cannot delete your own account")
        if not self._users.delete_by_id(user.user_id):
            raise NotFoundError("User not found")
        logger.info("User %s deleted by %s", user.username, actor.username)

    def verify_current_password(self, username: str, current_password: str) -> bool:
        user = self._users.get_by_username(username)
        return bool(user) and _check_password(user, current_password)

    def change_password(self, *, username: str, new_password: str, clear_force_update: bool = True) -> None:
        user = self.get_by_username(username)
        validate_password_strength(new_password, user.username)
        if _check_password(user, new_password):
            raise ValidationError("New password must be different from the current password",
                                  {"newPassword": "same as current"})
        self._users.update_password(
            user.user_id,
            password_hash=generate_password_hash(new_password),
            expiration_date=self._new_expiration(),
            force_password_update=user.force_password_update and not clear_force_update,
        )
        logger.info("Password changed for %s", username)

    def change_own_password(self, *, username: str, current_password: str, new_password: str) -> None:
        if not self.verify_current_password(username, current_password):
            raise AuthorizationError("Current password is incorrect")
        self.change_password(username=username, new_password=new_password, clear_force_update=True)

    def reset_password(self, *, user_id: int, new_password: str) -> None:
        """Admin reset: the user must choose a new password at next login."""
        user = self.get_user(user_id)
        validate_password_strength(new_password, user.username)
        self._users.update_password(
            user.user_id,
            password_hash=generate_password_hash(new_password),
            expiration_date=self._new_expiration(),
            force_password_update=True,
        )
        logger.info("Password reset for %s", user.username)

    def is_password_expired(self, username: str) -> bool:
        user = self._users.get_by_username(username)
        if not user or not user.expiration_date:
            return False
        return today() > user.expiration_date

    def is_password_expiring_soon(self, username: str) -> bool:
        user = self._users.get_by_username(username)
        if not user or not user.expiration_date:
            return False
        now = today()
        return now < user.expiration_date < now + timedelta(days=self._warning_days)

    def days_until_expiration(self, username: str) -> Optional[int]:
        user = self._users.get_by_username(username)
        if not user or not user.expiration_date:
            return None
        return max(0, (user.expiration_date - today()).days)
