from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

from src.activity_tracking.activity_tracking.core.enums import ReceiptStatus, Role
from src.activity_tracking.activity_tracking.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from src.activity_tracking.activity_tracking.expenses.model import Expense
from src.activity_tracking.activity_tracking.receipts.file_types import validate_receipt_content
from src.activity_tracking.activity_tracking.receipts.service import ReceiptService
from src.activity_tracking.activity_tracking.receipts.storage import (
    LocalReceiptStorage,
    S3ReceiptStorage,
    build_receipt_key,
)
from src.activity_tracking.activity_tracking.security.permissions import DEFAULT_ROLE_PERMISSIONS, Principal

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PDF = b"%PDF-1.7\n" + b"0" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32

ALICE = Principal(username="alice", role=Role.USER.value, permissions=DEFAULT_ROLE_PERMISSIONS[Role.USER.value])
BOB = Principal(username="bob", role=Role.USER.value, permissions=DEFAULT_ROLE_PERMISSIONS[Role.USER.value])


class OneExpense:
    def __init__(self):
        self.expense = Expense(
            expense_id=7, username="alice", client="Acme", project=None, expense_date=date(2026, 3, 2),
            expense_type="Travel", description="Taxi", amount=Decimal("12.00"), currency="USD",
            payment_method="Cash",
        )

    def get_by_id(self, expense_id):
        return self.expense if expense_id == 7 else None

    def set_receipt(self, expense_id, *, receipt_path, receipt_status):
        self.expense = replace(self.expense, receipt_path=receipt_path, receipt_status=receipt_status.value)
        return True


@pytest.mark.parametrize(
    "content,declared,expected",
    [(PNG, "image/png", "image/png"), (PDF, "application/pdf", "application/pdf"), (JPEG, "image/jpg", "image/jpeg")],
)
def test_matching_magic_bytes_are_accepted(content, declared, expected):
    assert validate_receipt_content(content, declared) == expected


@pytest.mark.parametrize(
    "content,declared",
    [(PNG, "application/pdf"), (b"GIF89a....", "image/gif"), (b"", "image/png"), (b"\x89P", "image/png"), (PDF, None)],
)
def test_mismatched_or_unsupported_files_are_rejected(content, declared):
    with pytest.raises(ValidationError):
        validate_receipt_content(content, declared)


def test_key_layout():
    key = build_receipt_key("j.doe", 42, "application/pdf", on=date(2026, 3, 2))
    assert key.startswith("j.doe/2026/03/receipt_42_")
    assert key.endswith(".pdf")


def test_local_storage_round_trip(tmp_path):
    storage = LocalReceiptStorage(tmp_path)
    key = storage.store(PNG, username="alice", expense_id=7, content_type="image/png")

    assert storage.exists(key)
    assert storage.retrieve(key) == PNG
    assert storage.content_type(key) == "image/png"
    assert storage.delete(key)
    assert not storage.exists(key)
    assert storage.delete(key) is False
    with pytest.raises(NotFoundError):
        storage.retrieve(key)


def test_local_storage_refuses_paths_outside_root(tmp_path):
    storage = LocalReceiptStorage(tmp_path / "receipts")
    with pytest.raises(ValidationError):
        storage.retrieve("../secrets.txt")


def test_upload_replaces_previous_receipt(tmp_path):
    storage = LocalReceiptStorage(tmp_path)
    expenses = OneExpense()
    svc = ReceiptService(expenses, storage)

    first = svc.upload(ALICE, 7, PNG, "image/png")
    assert first.receipt_status == ReceiptStatus.ATTACHED.value
    second = svc.upload(ALICE, 7, PDF, "application/pdf")

    assert not storage.exists(first.receipt_path)
    downloaded = svc.download(ALICE, 7)
    assert downloaded.content == PDF
    assert downloaded.content_type == "application/pdf"
    assert downloaded.filename == second.receipt_path.rsplit("/", 1)[-1]


def test_upload_checks_size_owner_and_type(tmp_path):
    svc = ReceiptService(OneExpense(), LocalReceiptStorage(tmp_path), max_bytes=16)
    with pytest.raises(ValidationError):
        svc.upload(ALICE, 7, PNG, "image/png")
    with pytest.raises(AuthorizationError):
        svc.upload(BOB, 7, PNG[:16], "image/png")
    with pytest.raises(NotFoundError):
        svc.upload(ALICE, 8, PNG[:16], "image/png")


def test_delete_marks_receipt_missing(tmp_path):
    storage = LocalReceiptStorage(tmp_path)
    expenses = OneExpense()
    svc = ReceiptService(expenses, storage)
    key = svc.upload(ALICE, 7, JPEG, "image/jpeg").receipt_path

    cleared = svc.delete(ALICE, 7)
    assert cleared.receipt_path is None
    assert cleared.receipt_status == ReceiptStatus.MISSING.value
    assert not storage.exists(key)
    with pytest.raises(NotFoundError):
        svc.download(ALICE, 7)


class FakeS3Client:
    def __init__(self):
        self.objects = {}

    def put_object(self, *, Bucket, Key, Body, ContentType, **_):
        self.objects[Key] = (Body, ContentType)

    def get_object(self, *, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        body, content_type = self.objects[Key]
        return {"Body": _Body(body), "ContentType": content_type}

    def head_object(self, *, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentType": self.objects[Key][1]}

    def delete_object(self, *, Bucket, Key):
        self.objects.pop(Key, None)


class _Body:
    def __init__(self, data):
        self._data = data

    def read(self):
        return self._data


def test_s3_storage_with_injected_client():
    client = FakeS3Client()
    storage = S3ReceiptStorage("receipts-bucket", client=client)
    key = storage.store(PDF, username="alice", expense_id=7, content_type="application/pdf")

    assert storage.exists(key)
    assert storage.retrieve(key) == PDF
    assert storage.delete(key)
    assert not storage.exists(key)
    with pytest.raises(NotFoundError):
        storage.retrieve(key)


def test_s3_storage_needs_a_bucket():
    with pytest.raises(ValueError):
        S3ReceiptStorage("")
