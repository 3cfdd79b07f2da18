"""
AGE-MATE Tracking Backend — Receipt Download Routes
====================================================

What:  GET /api/receipt/{tracking}/pdf and GET /api/receipt/{tracking}/jpeg
How:   Resolve the shipment, render in a worker thread (PyMuPDF is CPU-bound
       and synchronous), return the bytes as an attachment named
       <trackingNumber>-receipt.<ext>.

Errors:
    404 → no shipment for the identifier (NotFoundError)
    500 → rendering or rasterization failed (RenderError)
"""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from app.dependencies import get_lookup_service, get_receipt_renderer
from app.exceptions import NotFoundError
from app.schemas.shipment import ErrorResponse
from app.services.lookup_service import LookupService
from app.services.receipt_service import ReceiptRenderer, receipt_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/receipt", tags=["Receipts"])

_ERROR_RESPONSES = {
    404: {"description": "Tracking number not found", "model": ErrorResponse},
    500: {"description": "Receipt generation failed", "model": ErrorResponse},
}


def content_disposition(filename: str) -> str:
    """
    Attachment header value that survives non-ASCII tracking numbers.

    Plain ASCII names are sent as-is; anything else also gets an RFC 5987
    filename* parameter.
    """
    safe = filename.replace("\\", "_").replace('"', "_")
    if safe.isascii():
        return f'attachment; filename="{safe}"'
    fallback = safe.encode("ascii", "replace").decode("ascii").replace("?", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(safe)}"


@router.get(
    "/{tracking}/pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}, **_ERROR_RESPONSES},
    summary="Download the receipt as PDF",
)
async def receipt_pdf(
    tracking: str,
    lookup: LookupService = Depends(get_lookup_service),
    renderer: ReceiptRenderer = Depends(get_receipt_renderer),
) -> Response:
    shipment = await lookup.resolve(tracking)
    if shipment is None:
        raise NotFoundError(resource_id=tracking)

    content = await run_in_threadpool(renderer.render, shipment)
    return Response(
        content=content,
        media_type=renderer.media_type,
        headers={
            "Content-Disposition": content_disposition(
                receipt_filename(shipment, renderer.extension)
            ),
        },
    )


@router.get(
    "/{tracking}/jpeg",
    response_class=Response,
    responses={200: {"content": {"image/jpeg": {}}}, **_ERROR_RESPONSES},
    summary="Download the receipt as JPEG",
)
async def receipt_jpeg(
    tracking: str,
    lookup: LookupService = Depends(get_lookup_service),
    renderer: ReceiptRenderer = Depends(get_receipt_renderer),
) -> Response:
    shipment = await lookup.resolve(tracking)
    if shipment is None:
        raise NotFoundError(resource_id=tracking)

    content = await run_in_threadpool(renderer.render_image, shipment)
    rasterizer = renderer.rasterizer
    return Response(
        content=content,
        media_type=rasterizer.media_type,
        headers={
            "Content-Disposition": content_disposition(
                receipt_filename(shipment, rasterizer.extension)
            ),
        },
    )
