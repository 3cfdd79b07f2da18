"""
AGE-MATE Tracking Backend — Tracking Route Handler
===================================================

What:  POST /api/track, the public lookup used by the tracking page.
How:   Rejects a blank identifier, looks it up exactly as sent (no trimming,
       matching how keys are stored), delegates to LookupService, returns the
       stored record as-is (open schema, so no response_model filtering).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_lookup_service
from app.exceptions import NotFoundError, ValidationError
from app.schemas.shipment import ErrorResponse, ShipmentRecord, TrackRequest
from app.services.lookup_service import LookupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Tracking"])


@router.post(
    "/track",
    responses={
        200: {"description": "Shipment record", "model": ShipmentRecord},
        400: {"description": "Tracking number missing", "model": ErrorResponse},
        404: {"description": "Tracking number not found", "model": ErrorResponse},
    },
    summary="Look up a shipment by tracking number",
)
async def track(
    body: Optional[TrackRequest] = None,
    lookup: LookupService = Depends(get_lookup_service),
) -> JSONResponse:
    tracking = body.tracking if body and body.tracking is not None else ""
    if not tracking.strip():
        raise ValidationError(message="tracking required", field="tracking")

    shipment = await lookup.resolve(tracking)
    if shipment is None:
        raise NotFoundError(resource_id=tracking)

    return JSONResponse(content=shipment)
