from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest
from werkzeug.security import check_password_hash, generate_password_hash

from src.activity_tracking.activity_tracking.core.enums import Role
from src.activity_tracking.activity_tracking.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from src.activity_tracking.activity_tracking.security.permissions import Principal
from src.activity_tracking.activity_tracking.users.model import User
from src.activity_tracking.activity_tracking.users.service import (
    AuthService,
    UserService,
    validate_password_strength,
)

PASSWORD = "Winter#2026x"


class InMemoryUsers:
    def __init__(self, *users: User):
        self.by_id = {u.user_id: u for u in users}
        self.successful_logins = []

    def get_by_id(self, user_id):
        return self.by_id.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self.by_id.values() if u.username == username), None)

    def create_user(self, *, username, firstname, lastname, company, email, password_hash, role,
                    force_password_update, expiration_date):
        uid = max(self.by_id, default=0) + 1
        self.by_id[uid] = User(
            user_id=uid, username=username, firstname=firstname, lastname=lastname, company=company,
            email=email, password_hash=password_hash, role=role,
            force_password_update=force_password_update, expiration_date=expiration_date,
        )
        return uid

    def update_profile(self, user_id, *, firstname, lastname, company, email):
        self.by_id[user_id] = replace(self.by_id[user_id], firstname=firstname, lastname=lastname,
                                      company=company, email=email)
        return True

    def update_access(self, user_id, *, role, enabled, account_locked):
        self.by_id[user_id] = replace(self.by_id[user_id], role=role, enabled=enabled, account_locked=account_locked)
        return True

    def update_password(self, user_id, *, password_hash, expiration_date, force_password_update):
        self.by_id[user_id] = replace(
            self.by_id[user_id],
            password_hash=password_hash,
            expiration_date=expiration_date,
            force_password_update=force_password_update,
        )
        return True

    def record_failed_login(self, user_id, *, max_attempts):
        user = self.by_id[user_id]
        attempts = user.failed_login_attempts + 1
        self.by_id[user_id] = replace(user, failed_login_attempts=attempts, account_locked=attempts >= max_attempts)
        return attempts

    def record_successful_login(self, user_id, *, at):
        self.by_id[user_id] = replace(self.by_id[user_id], failed_login_attempts=0)
        self.successful_logins.append(user_id)

    def delete_by_id(self, user_id):
        return self.by_id.pop(user_id, None) is not None


class RecordingEmail:
    def __init__(self):
        self.locked = []

    def send_account_locked(self, *, username, failed_attempts):
        self.locked.append((username, failed_attempts))
        return True


def _user(user_id=1, username="alice", role=Role.USER.value, **kw):
    return User(user_id=user_id, username=username, firstname="Alice", lastname="Smith", company=None,
                email="alice@example.com", password_hash=generate_password_hash(PASSWORD), role=role, **kw)


def test_login_success_resets_counter():
    users = InMemoryUsers(_user(failed_login_attempts=2))
    user = AuthService(users).authenticate("alice", PASSWORD)
    assert user.username == "alice"
    assert users.successful_logins == [1]
    assert users.get_by_id(1).failed_login_attempts == 0


def test_unknown_user_and_wrong_password_share_the_message():
    users = InMemoryUsers(_user())
    auth = AuthService(users)
    with pytest.raises(AuthenticationError) as unknown:
        auth.authenticate("nobody", PASSWORD)
    with pytest.raises(AuthenticationError) as wrong:
        auth.authenticate("alice", "Nope#12345")
    assert str(unknown.value) == str(wrong.value)


def test_fifth_failure_locks_the_account_and_mails_admin():
    users = InMemoryUsers(_user())
    email = RecordingEmail()
    auth = AuthService(users, email, max_attempts=5)

    for _ in range(4):
        with pytest.raises(AuthenticationError) as err:
            auth.authenticate("alice", "bad")
        assert not isinstance(err.value, AccountLockedError)

    with pytest.raises(AccountLockedError):
        auth.authenticate("alice", "bad")
    assert email.locked == [("alice", 5)]

    # Even the right password is refused once locked.
    with pytest.raises(AccountLockedError):
        auth.authenticate("alice", PASSWORD)


def test_disabled_account_cannot_login():
    users = InMemoryUsers(_user(enabled=False))
    with pytest.raises(AuthenticationError, match="disabled"):
        AuthService(users).authenticate("alice", PASSWORD)


def test_guest_with_expired_password_cannot_login():
    users = InMemoryUsers(_user(role=Role.GUEST.value, expiration_date=date.today() - timedelta(days=1)))
    with pytest.raises(AuthenticationError, match="expired"):
        AuthService(users).authenticate("alice", PASSWORD)


def test_regular_user_with_expired_password_can_still_login():
    users = InMemoryUsers(_user(expiration_date=date.today() - timedelta(days=1)))
    assert AuthService(users).authenticate("alice", PASSWORD).username == "alice"


@pytest.mark.parametrize(
    "password",
    ["Short#1", "alllower#123", "NoDigits#here", "NoSpecial123", "Aaaa#1111bbb", "Alice#2026xyz"],
)
def test_weak_passwords_are_rejected(password):
    with pytest.raises(ValidationError):
        validate_password_strength(password, "alice")


def test_strong_password_is_accepted():
    assert validate_password_strength(PASSWORD, "alice") == PASSWORD


def test_create_user_sets_expiration_and_rejects_duplicates():
    users = InMemoryUsers()
    svc = UserService(users, known_roles=lambda: ["ADMIN", "USER"], expiration_days=90)
    uid = svc.create_user(username="bob", password=PASSWORD, lastname="Jones", role="user")
    created = users.get_by_id(uid)
    assert created.role == "USER"
    assert created.force_password_update is True
    assert created.expiration_date == date.today() + timedelta(days=90)

    with pytest.raises(ConflictError):
        svc.create_user(username="bob", password=PASSWORD, lastname="Jones")


def test_create_user_with_unknown_role_is_rejected():
    svc = UserService(InMemoryUsers(), known_roles=lambda: ["ADMIN", "USER"])
    with pytest.raises(ValidationError):
        svc.create_user(username="bob", password=PASSWORD, lastname="Jones", role="WIZARD")


def test_change_own_password_requires_current_password():
    users = InMemoryUsers(_user(force_password_update=True))
    svc = UserService(users)
    with pytest.raises(AuthorizationError):
        svc.change_own_password(username="alice", current_password="wrong", new_password="Spring#2027y")

    svc.change_own_password(username="alice", current_password=PASSWORD, new_password="Spring#2027y")
    updated = users.get_by_id(1)
    assert check_password_hash(updated.password_hash, "Spring#2027y")
    assert updated.force_password_update is False


def test_new_password_must_differ():
    svc = UserService(InMemoryUsers(_user()))
    with pytest.raises(ValidationError):
        svc.change_password(username="alice", new_password=PASSWORD)


def test_admin_reset_forces_update():
    users = InMemoryUsers(_user())
    UserService(users).reset_password(user_id=1, new_password="Spring#2027y")
    assert users.get_by_id(1).force_password_update is True


def test_cannot_delete_own_account():
    users = InMemoryUsers(_user(), _user(user_id=2, username="root", role=Role.ADMIN.value))
    svc = UserService(users)
    with pytest.raises(ConflictError):
        svc.delete_user(actor=Principal(username="root", role=Role.ADMIN.value), user_id=2)
    svc.delete_user(actor=Principal(username="root", role=Role.ADMIN.value), user_id=1)
    assert users.get_by_id(1) is None


def test_expiry_helpers():
    users = InMemoryUsers(_user(expiration_date=date.today() + timedelta(days=3)))
    svc = UserService(users, warning_days=7)
    assert not svc.is_password_expired("alice")
    assert svc.is_password_expiring_soon("alice")
    assert svc.days_until_expiration("alice") == 3


def test_update_user_with_unknown_role_changes_nothing():
    users = InMemoryUsers(_user())
    svc = UserService(users, known_roles=lambda: ["ADMIN", "USER"])
    with pytest.raises(ValidationError):
        svc.update_user(user_id=1, firstname="Alice", lastname="New", company="Acme", email="new@example.com",
                        role="NOPE", enabled=True, account_locked=False)
    user = users.get_by_id(1)
    assert user.lastname == "Smith"
    assert user.email == "alice@example.com"
    assert user.role == Role.USER.value


def test_update_user_changes_profile_and_access():
    users = InMemoryUsers(_user(account_locked=True))
    svc = UserService(users, known_roles=lambda: ["ADMIN", "USER"])
    user = svc.update_user(user_id=1, firstname="Alice", lastname="New", company="Acme", email=None,
                           role="admin", enabled=True, account_locked=False)
    assert user.lastname == "New"
    assert user.role == "ADMIN"
    assert user.account_locked is False
