from __future__ import annotations

from flask import Flask

from ..common.http import api_response, json_body
from ..security.guards import current_principal
from ..security.permissions import USER_MANAGEMENT, permission

MANAGE = permission(USER_MANAGEMENT, "MANAGE_ROLES")


def register(app: Flask, container) -> None:
    roles = container.role_service

    def _require(action: str, *, manage: bool = False) -> None:
        perms = [permission(USER_MANAGEMENT, action)] + ([MANAGE] if manage else [])
        current_principal().require(*perms)

    @app.get("/api/roles", endpoint="roles_list")
    def list_roles():
        _require("READ")
        data = [r.to_dict() for r in roles.list_roles()]
        return api_response("Roles retrieved successfully", data, count=len(data))

    @app.get("/api/roles/permissions", endpoint="roles_permissions")
    def list_permissions():
        _require("READ")
        data = [p.to_dict() for p in roles.list_permissions()]
        return api_response("Permissions retrieved successfully", data, count=len(data))

    @app.get("/api/roles/<int:role_id>", endpoint="roles_get")
    def get_role(role_id: int):
        _require("READ")
        return api_response("Role retrieved successfully", roles.get_role(role_id).to_dict())

    @app.post("/api/roles", endpoint="roles_create")
    def create_role():
        _require("CREATE", manage=True)
        body = json_body()
        role = roles.create_role(
            name=body.get("name"),
            description=body.get("description"),
            permissions=body.get("permissions") or [],
        )
        return api_response("Role created successfully", role.to_dict(), status=201)

    @app.put("/api/roles/<int:role_id>", endpoint="roles_update")
    def update_role(role_id: int):
        _require("UPDATE", manage=True)
        body = json_body()
        role = roles.update_role(
            role_id=role_id,
            description=body.get("description"),
            permissions=body.get("permissions") or [],
        )
        return api_response("Role updated successfully", role.to_dict())

    @app.delete("/api/roles/<int:role_id>", endpoint="roles_delete")
    def delete_role(role_id: int):
        _require("DELETE", manage=True)
        roles.delete_role(role_id)
        return api_response("Role deleted successfully")
