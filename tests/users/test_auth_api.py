from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash

from src.activity_tracking.activity_tracking.core.enums import Role
from src.activity_tracking.activity_tracking.main import create_app
from src.activity_tracking.activity_tracking.security.jwt_service import JwtService
from src.activity_tracking.activity_tracking.security.permissions import DEFAULT_ROLE_PERMISSIONS, Principal
from src.activity_tracking.activity_tracking.tokens.service import TokenRevocationService
from src.activity_tracking.activity_tracking.users.model import User
from src.activity_tracking.activity_tracking.users.service import AuthService, UserService

SECRET = "unit-test-secret-with-at-least-32-bytes!"
PASSWORD = "Winter#2026x"

UNUSED = (
    "role_service",
    "dropdown_service",
    "task_activity_service",
    "expense_service",
    "receipt_service",
    "csv_import_service",
    "report_service",
    "password_expiration_service",
)


class InMemoryUsers:
    def __init__(self, *users):
        self.by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.by_id.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self.by_id.values() if u.username == username), None)

    def list_users(self, **_):
        return list(self.by_id.values())

    def record_failed_login(self, user_id, *, max_attempts):
        user = self.by_id[user_id]
        attempts = user.failed_login_attempts + 1
        self.by_id[user_id] = replace(user, failed_login_attempts=attempts, account_locked=attempts >= max_attempts)
        return attempts

    def record_successful_login(self, user_id, *, at):
        self.by_id[user_id] = replace(self.by_id[user_id], failed_login_attempts=0)


class InMemoryRevokedTokens:
    def __init__(self):
        self.jtis = set()

    def exists_by_jti(self, jti):
        return jti in self.jtis

    def save(self, token):
        self.jtis.add(token.jti)


class RolePermissions:
    def principal_for(self, username, role):
        return Principal(username=username, role=role, permissions=DEFAULT_ROLE_PERMISSIONS.get(role, frozenset()))


class Database:
    up = True

    def ping(self):
        return self.up


def _user(user_id, username, role):
    return User(user_id=user_id, username=username, firstname=None, lastname=username.title(), company=None,
                email=None, password_hash=generate_password_hash(PASSWORD), role=role)


@pytest.fixture()
def container():
    users_repo = InMemoryUsers(_user(1, "alice", Role.USER.value), _user(2, "root", Role.ADMIN.value))
    jwt_service = JwtService(SECRET)
    return SimpleNamespace(
        db=Database(),
        users_repo=users_repo,
        jwt_service=jwt_service,
        token_revocation_service=TokenRevocationService(InMemoryRevokedTokens(), jwt_service),
        permission_service=RolePermissions(),
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        **{name: None for name in UNUSED},
    )


@pytest.fixture()
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container).test_client()


def _login(client, username="alice", password=PASSWORD):
    return client.post("/api/auth/login", json={"username": username, "password": password})


def test_login_me_logout(client):
    res = _login(client)
    assert res.status_code == 200
    tokens = res.get_json()["data"]
    assert tokens["tokenType"] == "Bearer"
    assert tokens["role"] == "USER"
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

    me = client.get("/api/users/me", headers=headers).get_json()["data"]
    assert me["username"] == "alice"
    assert "EXPENSE:SUBMIT" in me["permissions"]
    assert "passwordHash" not in me

    res = client.post("/api/auth/logout", headers={**headers, "X-Refresh-Token": tokens["refreshToken"]})
    assert res.status_code == 200

    assert client.get("/api/users/me", headers=headers).status_code == 401
    res = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert res.status_code == 401


def test_refresh_issues_new_access_token(client):
    tokens = _login(client).get_json()["data"]
    res = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert res.status_code == 200
    assert res.get_json()["data"]["accessToken"]

    # An access token is not accepted as a refresh token.
    res = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
    assert res.status_code == 401


def test_wrong_password_is_unauthorized(client):
    res = _login(client, password="Wrong#2026x")
    assert res.status_code == 401
    assert res.get_json()["message"] == "Invalid username or password"


def test_sixth_login_in_a_minute_is_rate_limited(client):
    for _ in range(5):
        _login(client, password="Wrong#2026x")
    res = _login(client)
    assert res.status_code == 429
    assert "Retry-After" in res.headers


def test_user_admin_endpoints_need_role_management(client):
    alice = _login(client).get_json()["data"]["accessToken"]
    root = _login(client, "root").get_json()["data"]["accessToken"]

    assert client.get("/api/users", headers={"Authorization": f"Bearer {alice}"}).status_code == 403
    res = client.get("/api/users", headers={"Authorization": f"Bearer {root}"})
    assert res.status_code == 200
    assert res.get_json()["count"] == 2


def test_health_reports_database_state(client, container):
    assert client.get("/api/health").get_json()["data"]["database"] == "UP"
    container.db.up = False
    res = client.get("/api/health")
    assert res.status_code == 503
    assert res.get_json()["success"] is False
