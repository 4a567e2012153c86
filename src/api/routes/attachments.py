"""Attachment upload endpoint.

Forwards files attached to a business partner document into the
S/4HANA attachment service, one file at a time.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse

from src.api.deps import get_s4_client
from src.core.auth import require_basic_auth
from src.core.config import Settings, get_settings
from src.integrations.s4hana.client import S4Client
from src.integrations.s4hana.errors import S4Error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/odata/v4/attachment", tags=["attachments"], dependencies=[Depends(require_basic_auth)])

ATTACHMENT_ENTITY_SET = "/sap/opu/odata/sap/ZAPI_PO_ATTACH_SRV/AttachmentSet"


def attachment_slug(business_partner: str, position: int, filename: str) -> str:
    """``<BP>/<BP>_<n><ext>`` with ``n`` counted from 1."""
    _, extension = os.path.splitext(filename)
    return f"{business_partner}/{business_partner}_{position}{extension}"


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    # Spooled file without a recorded size; measure it and rewind.
    size = upload.file.seek(0, os.SEEK_END)
    upload.file.seek(0)
    return size


@router.post("/upload")
async def upload_attachments(
    BPnumber: str | None = Form(default=None),
    media: list[UploadFile] | None = File(default=None),
    s4: S4Client = Depends(get_s4_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Upload up to ``attachment_max_files`` files for a business partner.

    Returns 200 when every file was stored, 207 when only some were and
    500 when none were.
    """
    if not BPnumber:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="BPnumber is required in form data")
    files = media or []
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one file is required in form data",
        )
    if len(files) > settings.attachment_max_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.attachment_max_files} files can be uploaded at once",
        )

    for upload in files:
        if _upload_size(upload) > settings.attachment_max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File {upload.filename} exceeds {settings.attachment_max_bytes} bytes",
            )

    logger.info("Processing %d file(s) for business partner %s", len(files), BPnumber)

    successful: list[dict[str, Any]] = []
    failed: list[dict[str, Any]] = []
    for position, upload in enumerate(files, start=1):
        content = await upload.read()
        filename = upload.filename or f"attachment_{position}"
        mime_type = upload.content_type or "application/octet-stream"
        entry: dict[str, Any] = {"fileName": filename, "fileSize": len(content), "mimeType": mime_type}

        try:
            details = await s4.write(
                "POST",
                ATTACHMENT_ENTITY_SET,
                content=content,
                headers={"Slug": attachment_slug(BPnumber, position, filename), "Content-Type": mime_type},
            )
        except S4Error as exc:
            logger.error("File upload failed: %s: %s", filename, exc)
            failed.append({**entry, "status": "failed", "error": str(exc)})
        else:
            successful.append({**entry, "status": "success", "details": details})

    summary = {"total": len(files), "successful": len(successful), "failed": len(failed)}
    if not failed:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "success": True,
                "message": f"All {len(successful)} file(s) attached successfully",
                "summary": summary,
                "uploads": successful,
            },
        )
    if not successful:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "Failed to upload all files",
                "summary": summary,
                "uploads": failed,
            },
        )
    return JSONResponse(
        status_code=status.HTTP_207_MULTI_STATUS,
        content={
            "success": True,
            "message": f"Uploaded {len(successful)} of {len(files)} files",
            "summary": summary,
            "successfulUploads": successful,
            "failedUploads": failed,
        },
    )
