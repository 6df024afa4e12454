from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """User persistence interface.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def list_users(
        self,
        *,
        username: Optional[str] = None,
        role: Optional[str] = None,
        company: Optional[str] = None,
    ) -> Sequence[User]:
        raise NotImplementedError

    def list_by_role(self, role: str) -> Sequence[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        username: str,
        firstname: Optional[str],
        lastname: str,
        company: Optional[str],
        email: Optional[str],
        password_hash: str,
        role: str,
        force_password_update: bool,
        expiration_date: Optional[date],
    ) -> int:
        raise NotImplementedError

    def update_profile(
        self,
        user_id: int,
        *,
        firstname: Optional[str],
        lastname: str,
        company: Optional[str],
        email: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def update_access(self, user_id: int, *, role: str, enabled: bool, account_locked: bool) -> bool:
        raise NotImplementedError

    def update_password(
        self,
        user_id: int,
        *,
        password_hash: str,
        expiration_date: Optional[date],
        force_password_update: bool,
    ) -> bool:
        raise NotImplementedError

    def record_failed_login(self, user_id: int, *, max_attempts: int) -> int:
        """Increment the failure counter (locking at ``max_attempts``); return the new count."""

        raise NotImplementedError

    def record_successful_login(self, user_id: int, *, at: datetime) -> None:
        raise NotImplementedError

    def count_by_role(self, role: str) -> int:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError
