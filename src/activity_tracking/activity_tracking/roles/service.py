from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..common.validators import optional_text, require_max_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..security.permissions import ALL_PERMISSIONS, Principal, split_permission
from ..users.repository import UserRepository
from .model import PermissionRecord, RoleRecord
from .repository import RoleRepository

logger = logging.getLogger(__name__)

BUILT_IN_ROLES = frozenset(r.value for r in Role)


class PermissionService:
    """Resolves ``RESOURCE:ACTION`` permission strings for users and roles."""

    def __init__(self, roles: RoleRepository, users: UserRepository):
        self._roles = roles
        self._users = users

    def permissions_for_role(self, role_name: str) -> frozenset[str]:
        if role_name == Role.ADMIN.value:
            return ALL_PERMISSIONS
        role = self._roles.get_by_name(role_name)
        return role.permissions if role else frozenset()

    def principal_for(self, username: str, role_name: str) -> Principal:
        return Principal(username=username, role=role_name, permissions=self.permissions_for_role(role_name))

    def user_has_permission(self, username: str, permission_string: str) -> bool:
        parts = split_permission(permission_string)
        if not parts:
            logger.warning("Malformed permission string %r", permission_string)
            return False
        user = self._users.get_by_username(username)
        if not user:
            return False
        return self.principal_for(user.username, user.role).has(f"{parts[0]}:{parts[1]}")


class RoleService:
    def __init__(self, roles: RoleRepository, users: UserRepository):
        self._roles = roles
        self._users = users

    def role_names(self) -> list[str]:
        return [r.name for r in self._roles.list_roles()]

    def list_roles(self) -> Sequence[RoleRecord]:
        return self._roles.list_roles()

    def list_permissions(self) -> Sequence[PermissionRecord]:
        return self._roles.list_permissions()

    def get_role(self, role_id: int) -> RoleRecord:
        role = self._roles.get_by_id(int(role_id))
        if not role:
            raise NotFoundError("Role not found")
        return role

    def _validate_permissions(self, permissions: Optional[Iterable[str]]) -> frozenset[str]:
        known = {p.key for p in self._roles.list_permissions()}
        out = set()
        for value in permissions or []:
            parts = split_permission(str(value))
            key = f"{parts[0]}:{parts[1]}" if parts else str(value)
            if key not in known:
                raise ValidationError(f"Unknown permission: {value}", {"permissions": f"unknown: {value}"})
            out.add(key)
        return frozenset(out)

    def create_role(self, *, name: str, description: Optional[str], permissions: Iterable[str]) -> RoleRecord:
        name = require_max_length(require_non_empty(name, "name").upper(), "name", 50)
        if self._roles.get_by_name(name):
            raise ConflictError(f"Role {name} already exists")
        role_id = self._roles.create_role(
            name=name,
            description=optional_text(description),
            permissions=self._validate_permissions(permissions),
        )
        logger.info("Role %s created", name)
        return self.get_role(role_id)

    def update_role(self, *, role_id: int, description: Optional[str], permissions: Iterable[str]) -> RoleRecord:
        role = self.get_role(role_id)
        if role.name == Role.ADMIN.value:
            raise ConflictError("The ADMIN role always has every permission and cannot be edited")
        self._roles.update_role(
            role.role_id,
            description=optional_text(description),
            permissions=self._validate_permissions(permissions),
        )
        logger.info("Role %s updated", role.name)
        return self.get_role(role.role_id)

    def delete_role(self, role_id: int) -> None:
        role = self.get_role(role_id)
        if role.name in BUILT_IN_ROLES:
            raise ConflictError(f"Built-in role {role.name} cannot be deleted")
        if self._users.count_by_role(role.name) > 0:
            raise ConflictError(f"Role {role.name} is still assigned to users")
        self._roles.delete_role(role.role_id)
        logger.info("Role %s deleted", role.name)
