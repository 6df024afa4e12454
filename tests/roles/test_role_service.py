from __future__ import annotations

from dataclasses import replace

import pytest

from src.activity_tracking.activity_tracking.core.exceptions import ConflictError, ValidationError
from src.activity_tracking.activity_tracking.roles.model import PermissionRecord, RoleRecord
from src.activity_tracking.activity_tracking.roles.service import PermissionService, RoleService
from src.activity_tracking.activity_tracking.security.permissions import (
    ALL_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    split_permission,
)
from src.activity_tracking.activity_tracking.users.model import User


class InMemoryRoles:
    def __init__(self):
        self.roles: dict[int, RoleRecord] = {}
        self.catalogue = [
            PermissionRecord(i, *split_permission(p)) for i, p in enumerate(sorted(ALL_PERMISSIONS), start=1)
        ]
        for name, perms in DEFAULT_ROLE_PERMISSIONS.items():
            self.create_role(name=name, description=None, permissions=perms)

    def get_by_id(self, role_id):
        return self.roles.get(role_id)

    def get_by_name(self, name):
        return next((r for r in self.roles.values() if r.name == name), None)

    def list_roles(self):
        return list(self.roles.values())

    def list_permissions(self):
        return self.catalogue

    def create_role(self, *, name, description, permissions):
        role_id = len(self.roles) + 1
        self.roles[role_id] = RoleRecord(role_id, name, description, frozenset(permissions))
        return role_id

    def update_role(self, role_id, *, description, permissions):
        self.roles[role_id] = replace(self.roles[role_id], description=description, permissions=frozenset(permissions))
        return True

    def delete_role(self, role_id):
        return self.roles.pop(role_id, None) is not None


class Users:
    def __init__(self, *users):
        self._users = {u.username: u for u in users}

    def get_by_username(self, username):
        return self._users.get(username)

    def count_by_role(self, role):
        return sum(1 for u in self._users.values() if u.role == role)


def _user(username, role):
    return User(user_id=1, username=username, firstname=None, lastname=username, company=None, email=None,
                password_hash="x", role=role)


@pytest.fixture()
def roles():
    return InMemoryRoles()


def test_user_has_permission(roles):
    svc = PermissionService(roles, Users(_user("alice", "USER"), _user("root", "ADMIN")))
    assert svc.user_has_permission("alice", "expense:submit")
    assert not svc.user_has_permission("alice", "EXPENSE:APPROVE")
    assert svc.user_has_permission("root", "EXPENSE:APPROVE")
    assert not svc.user_has_permission("ghost", "EXPENSE:READ")
    assert not svc.user_has_permission("alice", "garbage")


def test_custom_role_lifecycle(roles):
    svc = RoleService(roles, Users())
    created = svc.create_role(name="auditor", description="Read only", permissions=["reports:view", "REPORTS:EXPORT"])
    assert created.name == "AUDITOR"
    assert created.permissions == {"REPORTS:VIEW", "REPORTS:EXPORT"}
    assert "AUDITOR" in svc.role_names()

    updated = svc.update_role(role_id=created.role_id, description=None, permissions=["REPORTS:VIEW"])
    assert updated.permissions == {"REPORTS:VIEW"}

    svc.delete_role(created.role_id)
    assert "AUDITOR" not in svc.role_names()


def test_unknown_permission_is_rejected(roles):
    with pytest.raises(ValidationError):
        RoleService(roles, Users()).create_role(name="X", description=None, permissions=["REPORTS:FLY"])


def test_duplicate_and_protected_roles(roles):
    svc = RoleService(roles, Users())
    admin = roles.get_by_name("ADMIN")
    with pytest.raises(ConflictError):
        svc.create_role(name="user", description=None, permissions=[])
    with pytest.raises(ConflictError):
        svc.update_role(role_id=admin.role_id, description=None, permissions=[])
    with pytest.raises(ConflictError):
        svc.delete_role(roles.get_by_name("GUEST").role_id)


def test_role_in_use_cannot_be_deleted(roles):
    svc = RoleService(roles, Users(_user("ann", "AUDITOR")))
    created = svc.create_role(name="AUDITOR", description=None, permissions=[])
    with pytest.raises(ConflictError):
        svc.delete_role(created.role_id)
