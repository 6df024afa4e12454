"""Where receipt files live: a local directory tree or an S3 bucket.

Both back ends use the same key layout,
``<username>/<yyyy>/<mm>/receipt_<expenseId>_<uuid><ext>``.
"""
from __future__ import annotations

import logging
import mimetypes
import os
import uuid
from datetime import date
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..common.datetime_utils import today as current_day
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from .file_types import EXTENSIONS

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def build_receipt_key(username: str, expense_id: int, content_type: str, *, on: Optional[date] = None) -> str:
    on = on or current_day()
    safe_user = "".join(c for c in username if c.isalnum() or c in "._-") or "unknown"
    extension = EXTENSIONS.get(content_type, "")
    return f"{safe_user}/{on:%Y}/{on:%m}/receipt_{int(expense_id)}_{uuid.uuid4().hex}{extension}"


def guess_content_type(key: str) -> str:
    guessed, _ = mimetypes.guess_type(key)
    return guessed or "application/octet-stream"


class ReceiptStorage(Protocol):
    def store(self, content: bytes, *, username: str, expense_id: int, content_type: str) -> str:
        raise NotImplementedError

    def retrieve(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def content_type(self, key: str) -> str:
        raise NotImplementedError


class LocalReceiptStorage(ReceiptStorage):
    def __init__(self, root: str | os.PathLike):
        self._root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise ValidationError("Invalid receipt path", {"receiptPath": "outside storage root"})
        return path

    def store(self, content: bytes, *, username: str, expense_id: int, content_type: str) -> str:
        key = build_receipt_key(username, expense_id, content_type)
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Could not store receipt: {e}") from e
        logger.info("Stored receipt %s (%s bytes)", key, len(content))
        return key

    def retrieve(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Receipt file not found")
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read receipt: {e}") from e

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Could not delete receipt: {e}") from e
        logger.info("Deleted receipt %s", key)
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def content_type(self, key: str) -> str:
        return guess_content_type(key)


class S3ReceiptStorage(ReceiptStorage):
    def __init__(self, bucket: str, *, region: Optional[str] = None, client=None):
        if not bucket:
            raise ValueError("S3_BUCKET must be set when STORAGE_TYPE is s3")
        self._bucket = bucket
        self._region = region
        self._client = client

    def _get_client(self):
        """Lazy initialization of the S3 client; credentials come from the default AWS chain."""
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self._region,
                config=Config(retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._client

    def store(self, content: bytes, *, username: str, expense_id: int, content_type: str) -> str:
        key = build_receipt_key(username, expense_id, content_type)
        try:
            self._get_client().put_object(Bucket=self._bucket, Key=key, Body=content, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise StorageError("Could not store receipt") from e
        logger.info("Uploaded receipt s3://%s/%s (%s bytes)", self._bucket, key, len(content))
        return key

    def retrieve(self, key: str) -> bytes:
        try:
            response = self._get_client().get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                raise NotFoundError("Receipt file not found") from e
            logger.error("S3 download of %s failed: %s", key, e)
            raise StorageError("Could not read receipt") from e
        except BotoCoreError as e:
            raise StorageError("Could not read receipt") from e

    def delete(self, key: str) -> bool:
        try:
            self._get_client().delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 delete of %s failed: %s", key, e)
            raise StorageError("Could not delete receipt") from e
        logger.info("Deleted receipt s3://%s/%s", self._bucket, key)
        return True

    def exists(self, key: str) -> bool:
        try:
            self._get_client().head_object(Bucket=self._bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                return False
            raise StorageError("Could not check receipt") from e

    def content_type(self, key: str) -> str:
        try:
            response = self._get_client().head_object(Bucket=self._bucket, Key=key)
        except ClientError:
            return guess_content_type(key)
        return response.get("ContentType") or guess_content_type(key)


def build_receipt_storage(settings) -> ReceiptStorage:
    storage_type = str(getattr(settings, "STORAGE_TYPE", "local") or "local").lower()
    if storage_type == "s3":
        return S3ReceiptStorage(getattr(settings, "S3_BUCKET", ""), region=getattr(settings, "AWS_REGION", None))
    if storage_type != "local":
        raise ValueError(f"Unknown STORAGE_TYPE: {storage_type}")
    return LocalReceiptStorage(getattr(settings, "STORAGE_LOCAL_PATH", "receipts"))
