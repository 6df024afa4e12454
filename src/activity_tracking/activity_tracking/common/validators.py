from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required", {field_name: "must not be blank"})
    return str(value).strip()


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(
            f"{field_name} must not exceed {max_len} characters",
            {field_name: f"maximum length is {max_len}"},
        )
    return value


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_decimal(value: Any, field_name: str) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required", {field_name: "must not be blank"})
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number", {field_name: "not a number"})
    if not number.is_finite():
        raise ValidationError(f"{field_name} must be a number", {field_name: "not a number"})
    return number


def require_range(value: Decimal, field_name: str, minimum: Decimal, maximum: Optional[Decimal] = None) -> Decimal:
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        raise ValidationError(f"{field_name} must be {bounds}", {field_name: f"must be {bounds}"})
    return value


def to_cents(value: Decimal, field_name: str) -> Decimal:
    try:
        return value.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValidationError(f"{field_name} is out of range", {field_name: "out of range"})


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in {"1", "true", "yes", "y", "on"}
