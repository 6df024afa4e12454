"""Receipt file type checks based on the file's leading bytes."""
from __future__ import annotations

import logging
from typing import Optional

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

SIGNATURES: dict[str, bytes] = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89PNG\r\n\x1a\n",
    "application/pdf": b"%PDF",
}

EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}


def normalize_content_type(content_type: Optional[str]) -> str:
    value = (content_type or "").split(";", 1)[0].strip().lower()
    return "image/jpeg" if value in ("image/jpg", "image/pjpeg") else value


def detect_content_type(content: bytes) -> Optional[str]:
    for content_type, signature in SIGNATURES.items():
        if content.startswith(signature):
            return content_type
    return None


def validate_receipt_content(content: bytes, declared_type: Optional[str]) -> str:
    """Return the normalised content type, or raise if the bytes do not match it."""
    if not content:
        raise ValidationError("File is empty", {"file": "empty"})
    if not declared_type:
        raise ValidationError("Content-Type is missing", {"file": "missing content type"})

    content_type = normalize_content_type(declared_type)
    signature = SIGNATURES.get(content_type)
    if signature is None:
        raise ValidationError(
            f"Unsupported file type: {declared_type}. Allowed types: JPEG, PNG, PDF",
            {"file": "unsupported type"},
        )
    if len(content) < len(signature):
        raise ValidationError("File is too small or corrupted", {"file": "too small"})
    if not content.startswith(signature):
        logger.warning("Receipt bytes %s do not match declared type %s", content[:8].hex(), content_type)
        raise ValidationError(
            f"File content does not match declared type ({declared_type})",
            {"file": "content does not match type"},
        )
    return content_type
