from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from priceportal.core.context import AuthContext
from priceportal.dependencies.permissions import require_admin
from priceportal.dependencies.services import get_audit_logger, get_storage
from priceportal.schemas.audit import UploadImageDetail
from priceportal.schemas.price_group import UploadOut
from priceportal.services.audit import AuditLogger
from priceportal.services.storage import Storage, StorageError, clean_folder
from priceportal.services.uploads import IncomingFile, store_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["uploads"])

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@router.post("/upload", response_model=UploadOut)
async def upload_file(
    file: Optional[UploadFile] = File(default=None),
    folder: Optional[str] = Form(default=None),
    ctx: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
    audit: AuditLogger = Depends(get_audit_logger),
):
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    try:
        target = clean_folder(folder)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (max 10MB)")

    incoming = IncomingFile(filename=file.filename or "upload", data=content, content_type=file.content_type)
    try:
        stored = await run_in_threadpool(store_file, storage, incoming, target)
    except StorageError:
        logger.exception("upload failed folder=%s file=%s", target, incoming.filename)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload") from None

    await run_in_threadpool(
        audit.record,
        ctx.user_id,
        UploadImageDetail(
            file_name=stored.file_name,
            file_path=stored.file_path,
            folder=target,
            file_size=stored.file_size,
        ),
    )

    return UploadOut(file_path=stored.file_path, file_name=stored.file_name, public_url=stored.public_url)
