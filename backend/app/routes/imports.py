"""
AGE-MATE Tracking Backend — Bulk Import Route
==============================================

What:  POST /api/import-csv, multipart upload under the form field "file".
How:   Reads the upload, enforces the size limit, hands the bytes to
       ImportService. Row-level problems come back in the `errors` list;
       only a missing or unparsable file is a 400.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.config import Settings
from app.dependencies import get_import_service
from app.exceptions import ValidationError
from app.schemas.shipment import ErrorResponse, ImportResponse
from app.services.import_service import ImportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Import"])


@router.post(
    "/import-csv",
    response_model=ImportResponse,
    responses={
        400: {"description": "File missing or not parsable as CSV", "model": ErrorResponse},
    },
    summary="Bulk import shipments from CSV",
    description=(
        "The first row names the columns. Each row needs a trackingNumber, "
        "tracking or id column value; rows without one are reported in "
        "`errors` and skipped. Existing records are merged, not replaced."
    ),
)
async def import_csv(
    request: Request,
    file: Optional[UploadFile] = File(default=None, description="CSV file"),
    importer: ImportService = Depends(get_import_service),
) -> ImportResponse:
    if file is None:
        raise ValidationError(message='file is required in form field "file"', field="file")

    settings: Settings = request.app.state.settings
    try:
        content = await file.read()
    finally:
        await file.close()

    logger.info("Received CSV import: filename=%s, size=%d bytes", file.filename or "unknown", len(content))

    if len(content) > settings.max_import_size:
        raise ValidationError(
            message=f"CSV file exceeds the maximum of {settings.max_import_size} bytes",
            field="file",
            context={"size": len(content), "max_size": settings.max_import_size},
        )

    return await importer.import_csv(content)
