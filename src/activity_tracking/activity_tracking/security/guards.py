"""Bearer-token authentication and the permission gate for ``/api/*`` routes."""
from __future__ import annotations

from functools import wraps

from flask import Flask, g, request

from ..core.enums import TokenType
from ..core.exceptions import AuthenticationError
from .permissions import Principal, permission

PUBLIC_PATHS = frozenset({"/api/auth/login", "/api/auth/refresh", "/api/health"})


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return ""
    return header[len("Bearer "):].strip()


def current_principal() -> Principal:
    principal = g.get("principal")
    if principal is None:
        raise AuthenticationError("Authentication required")
    return principal


def require_permission(resource: str, action: str):
    """Route decorator: the caller must hold ``RESOURCE:ACTION``."""
    required = permission(resource, action)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            current_principal().require(required)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def init_auth(app: Flask, container) -> None:
    @app.before_request
    def authenticate_request():
        if request.method == "OPTIONS":
            return None
        if not request.path.startswith("/api/") or request.path in PUBLIC_PATHS:
            return None

        token = bearer_token()
        if not token:
            raise AuthenticationError("Authentication required")

        claims = container.jwt_service.decode(token)
        if claims.token_type != TokenType.ACCESS.value:
            raise AuthenticationError("Access token required")
        if container.token_revocation_service.is_token_revoked(claims.jti):
            raise AuthenticationError("Token has been revoked")

        user = container.users_repo.get_by_username(claims.username)
        if not user or not user.enabled or user.account_locked:
            raise AuthenticationError("Account is not active")

        g.principal = container.permission_service.principal_for(user.username, user.role)
        g.access_token = token
        return None
