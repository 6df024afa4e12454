"""JSON envelope helpers and error mapping for the REST API."""
from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, ValidationError
from .datetime_utils import utc_now

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def api_response(
    message: str,
    data: Any = None,
    *,
    status: int = 200,
    success: bool = True,
    count: Optional[int] = None,
    total_hours: Optional[float] = None,
):
    body: dict[str, Any] = {
        "success": success,
        "message": message,
        "data": data,
        "timestamp": utc_now().isoformat(timespec="seconds"),
    }
    if count is not None:
        body["count"] = count
    if total_hours is not None:
        body["totalHours"] = total_hours
    return jsonify(body), status


def api_error(message: str, status: int, data: Any = None):
    return api_response(message, data, status=status, success=False)


def json_body() -> dict:
    """Request JSON as a dict; malformed or non-object bodies are a validation error."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        if e.errors:
            return api_error("Validation failed", 400, {"message": str(e), "errors": e.errors})
        return api_error(str(e), 400)

    @app.errorhandler(DomainError)
    def handle_domain(e: DomainError):
        if e.status_code >= 500:
            logger.error("Domain failure on %s %s: %s", request.method, request.path, e)
        return api_error(str(e), e.status_code)

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return api_error(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error(UNEXPECTED_ERROR_MESSAGE, 500)
