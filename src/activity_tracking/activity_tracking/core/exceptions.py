from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.errors = dict(errors or {})


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are invalid."""

    status_code = 401


class AccountLockedError(AuthenticationError):
    """Raised when the account is locked after too many failed logins."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""

    status_code = 404


class ConflictError(DomainError):
    """Raised on invalid state transitions and duplicate records."""

    status_code = 409


class StorageError(DomainError):
    """Raised when receipt storage fails."""

    status_code = 500
