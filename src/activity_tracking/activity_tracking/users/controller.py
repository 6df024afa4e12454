from __future__ import annotations

import logging

from flask import Flask, g, request

from ..common.http import api_response, json_body
from ..common.validators import parse_bool
from ..core.enums import Role, TokenType
from ..core.exceptions import AuthenticationError, ValidationError
from ..security.guards import current_principal
from ..security.permissions import USER_MANAGEMENT, permission

logger = logging.getLogger(__name__)

MANAGE = permission(USER_MANAGEMENT, "MANAGE_ROLES")


def register(app: Flask, container) -> None:
    users = container.user_service
    jwt_service = container.jwt_service

    def _require_admin(action: str) -> None:
        # Touching other people's accounts needs the action plus role management.
        current_principal().require(permission(USER_MANAGEMENT, action), MANAGE)

    # -------- Auth --------
    @app.post("/api/auth/login", endpoint="auth_login")
    def login():
        body = json_body()
        user = container.auth_service.authenticate(body.get("username"), body.get("password"))
        data = {
            "accessToken": jwt_service.generate_access_token(user.username, [user.role]),
            "refreshToken": jwt_service.generate_refresh_token(user.username),
            "tokenType": "Bearer",
            "expiresIn": jwt_service.access_expires_in_seconds,
            "username": user.username,
            "role": user.role,
            "forcePasswordUpdate": user.force_password_update or users.is_password_expired(user.username),
        }
        return api_response("Login successful", data)

    @app.post("/api/auth/refresh", endpoint="auth_refresh")
    def refresh():
        token = json_body().get("refreshToken")
        if not token:
            raise AuthenticationError("Refresh token is required")
        claims = jwt_service.decode(token)
        if claims.token_type != TokenType.REFRESH.value:
            raise AuthenticationError("Invalid refresh token")
        if container.token_revocation_service.is_token_revoked(claims.jti):
            raise AuthenticationError("Refresh token has been revoked")
        user = container.auth_service.ensure_active(claims.username)
        data = {
            "accessToken": jwt_service.generate_access_token(user.username, [user.role]),
            "refreshToken": token,
            "tokenType": "Bearer",
            "expiresIn": jwt_service.access_expires_in_seconds,
            "username": user.username,
            "role": user.role,
        }
        return api_response("Token refreshed successfully", data)

    @app.post("/api/auth/logout", endpoint="auth_logout")
    def logout():
        revocations = container.token_revocation_service
        revocations.revoke_token(g.access_token, "logout")
        refresh_token = request.headers.get("X-Refresh-Token") or json_body().get("refreshToken")
        if refresh_token:
            revocations.revoke_token(refresh_token, "logout")
        logger.info("User %s logged out", current_principal().username)
        return api_response("Logout successful")

    @app.get("/api/health", endpoint="health")
    def health():
        database_up = container.db.ping()
        data = {"status": "UP" if database_up else "DEGRADED", "database": "UP" if database_up else "DOWN"}
        return api_response("Service is running", data, status=200 if database_up else 503, success=database_up)

    # -------- Own account --------
    @app.get("/api/users/me", endpoint="users_me")
    def me():
        principal = current_principal()
        user = users.get_by_username(principal.username)
        data = user.to_dict()
        data.update(
            {
                "permissions": sorted(principal.permissions),
                "passwordExpired": users.is_password_expired(user.username),
                "passwordExpiringSoon": users.is_password_expiring_soon(user.username),
                "daysUntilExpiration": users.days_until_expiration(user.username),
            }
        )
        return api_response("Current user retrieved", data)

    @app.put("/api/users/me", endpoint="users_me_update")
    def update_me():
        principal = current_principal()
        principal.require(permission(USER_MANAGEMENT, "UPDATE"))
        body = json_body()
        current = users.get_by_username(principal.username)
        user = users.update_profile(
            user_id=current.user_id,
            firstname=body.get("firstname"),
            lastname=body.get("lastname"),
            company=body.get("company"),
            email=body.get("email"),
        )
        return api_response("Profile updated successfully", user.to_dict())

    @app.put("/api/users/me/password", endpoint="users_me_password")
    def change_my_password():
        body = json_body()
        new_password = body.get("newPassword")
        confirm = body.get("confirmNewPassword")
        if confirm is not None and confirm != new_password:
            raise ValidationError("New passwords do not match", {"confirmNewPassword": "does not match"})
        users.change_own_password(
            username=current_principal().username,
            current_password=body.get("currentPassword"),
            new_password=new_password,
        )
        return api_response("Password changed successfully")

    # -------- Administration --------
    @app.get("/api/users", endpoint="users_list")
    def list_users():
        _require_admin("READ")
        rows = [
            u.to_dict()
            for u in users.list_users(
                username=request.args.get("username"),
                role=request.args.get("role"),
                company=request.args.get("company"),
            )
        ]
        return api_response("Users retrieved successfully", rows, count=len(rows))

    @app.get("/api/users/<int:user_id>", endpoint="users_get")
    def get_user(user_id: int):
        _require_admin("READ")
        return api_response("User retrieved successfully", users.get_user(user_id).to_dict())

    @app.post("/api/users", endpoint="users_create")
    def create_user():
        _require_admin("CREATE")
        body = json_body()
        user_id = users.create_user(
            username=body.get("username"),
            password=body.get("password"),
            firstname=body.get("firstname"),
            lastname=body.get("lastname"),
            company=body.get("company"),
            email=body.get("email"),
            role=body.get("role") or Role.USER.value,
            force_password_update=parse_bool(body.get("forcePasswordUpdate"), default=True),
        )
        return api_response("User created successfully", users.get_user(user_id).to_dict(), status=201)

    @app.put("/api/users/<int:user_id>", endpoint="users_update")
    def update_user(user_id: int):
        _require_admin("UPDATE")
        body = json_body()
        current = users.get_user(user_id)
        user = users.update_user(
            user_id=user_id,
            firstname=body.get("firstname", current.firstname),
            lastname=body.get("lastname", current.lastname),
            company=body.get("company", current.company),
            email=body.get("email", current.email),
            role=body.get("role", current.role),
            enabled=parse_bool(body.get("enabled"), default=current.enabled),
            account_locked=parse_bool(body.get("accountLocked"), default=current.account_locked),
        )
        return api_response("User updated successfully", user.to_dict())

    @app.delete("/api/users/<int:user_id>", endpoint="users_delete")
    def delete_user(user_id: int):
        _require_admin("DELETE")
        users.delete_user(actor=current_principal(), user_id=user_id)
        return api_response("User deleted successfully")

    @app.put("/api/users/<int:user_id>/password", endpoint="users_reset_password")
    def reset_password(user_id: int):
        _require_admin("UPDATE")
        users.reset_password(user_id=user_id, new_password=json_body().get("newPassword"))
        return api_response("Password reset successfully. The user must change it at next login.")
