from __future__ import annotations

from flask import Flask, Response, request

from ..common.http import api_response
from ..core.exceptions import ValidationError
from ..security.guards import current_principal


def register(app: Flask, container) -> None:
    service = container.receipt_service

    @app.post("/api/receipts/<int:expense_id>", endpoint="receipt_upload")
    def upload_receipt(expense_id: int):
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("A receipt file is required", {"file": "required"})
        expense = service.upload(current_principal(), expense_id, upload.read(), upload.mimetype)
        return api_response("Receipt uploaded successfully", expense.to_dict())

    @app.get("/api/receipts/<int:expense_id>", endpoint="receipt_download")
    def download_receipt(expense_id: int):
        receipt = service.download(current_principal(), expense_id)
        return Response(
            receipt.content,
            mimetype=receipt.content_type,
            headers={"Content-Disposition": f'inline; filename="{receipt.filename}"'},
        )

    @app.delete("/api/receipts/<int:expense_id>", endpoint="receipt_delete")
    def delete_receipt(expense_id: int):
        expense = service.delete(current_principal(), expense_id)
        return api_response("Receipt deleted successfully", expense.to_dict())
