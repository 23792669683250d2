"""
Receipt download endpoint.

Redeems the signed links handed out by GET /payments/{id}/receipt-url.
The link itself is the credential; no session cookie is required.
"""

import logging
import mimetypes
from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from buffet_ledger.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from buffet_ledger.app.core.jwt import decode_receipt_link_token
from buffet_ledger.app.services.receipt_storage import ReceiptStorage, StorageError, get_receipt_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/receipts", tags=["Receipts"])


@router.get("/download", response_class=FileResponse)
async def download_receipt(
    token: str = Query(..., description="Signed receipt link token"),
    storage: ReceiptStorage = Depends(get_receipt_storage)
):
    path = decode_receipt_link_token(token)
    if not path:
        raise InsufficientPermissionsError("Receipt link is invalid or has expired.")

    try:
        file_path = storage.resolve(path)
    except StorageError:
        logger.warning("Rejected receipt link for path %r", path)
        raise InsufficientPermissionsError("Receipt link is invalid or has expired.")

    if not file_path.is_file():
        raise ResourceNotFoundError("Receipt")

    media_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    return FileResponse(file_path, media_type=media_type, filename=file_path.name)
