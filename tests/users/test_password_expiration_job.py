from __future__ import annotations

from datetime import date, timedelta

from src.activity_tracking.activity_tracking.core.enums import Role
from src.activity_tracking.activity_tracking.users.model import User
from src.activity_tracking.activity_tracking.users.password_expiration import (
    PasswordExpirationNotificationService,
)

TODAY = date(2026, 5, 10)


class Users:
    def __init__(self, *users):
        self._users = list(users)

    def list_users(self, **_):
        return self._users


class Outbox:
    def __init__(self):
        self.expiring = []
        self.expired = []

    def send_password_expiring(self, to, *, username, days_left):
        self.expiring.append((username, days_left))
        return True

    def send_password_expired(self, to, *, username):
        self.expired.append(username)
        return True


def _user(username, expires, *, role=Role.USER.value, email="x@example.com", **kw):
    return User(user_id=len(username), username=username, firstname=None, lastname=username, company=None,
                email=email, password_hash="x", role=role, expiration_date=expires, **kw)


def test_warns_within_window_and_notifies_yesterdays_expiry():
    outbox = Outbox()
    users = Users(
        _user("soon", TODAY + timedelta(days=3)),
        _user("today", TODAY),
        _user("far", TODAY + timedelta(days=30)),
        _user("yesterday", TODAY - timedelta(days=1)),
        _user("long_ago", TODAY - timedelta(days=10)),
    )
    summary = PasswordExpirationNotificationService(users, outbox, warning_days=7).run(today=TODAY)

    assert sorted(outbox.expiring) == [("soon", 3), ("today", 0)]
    assert outbox.expired == ["yesterday"]
    assert summary.checked == 5
    assert summary.warnings_sent == 2
    assert summary.expired_sent == 1


def test_skips_guests_disabled_locked_and_users_without_email():
    outbox = Outbox()
    soon = TODAY + timedelta(days=1)
    users = Users(
        _user("guest", soon, role=Role.GUEST.value),
        _user("noemail", soon, email=None),
        _user("disabled", soon, enabled=False),
        _user("locked", soon, account_locked=True),
    )
    summary = PasswordExpirationNotificationService(users, outbox).run(today=TODAY)
    assert summary.checked == 0
    assert outbox.expiring == []
