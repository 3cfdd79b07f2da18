"""
AGE-MATE Tracking Backend — Shipment Administration Routes
===========================================================

What:  Create/replace, partially update, and list shipment records.

Routes:
    POST /api/shipments              upsert a full record       → 201
    PUT  /api/shipments/{tracking}   merge a partial record     → 200
    GET  /api/shipments              list all records           → 200
    GET  /api/shipments/{tracking}   fetch one record           → 200

Records are open-ended JSON objects, so bodies are taken as plain dicts and
returned as stored; ShipmentRecord is used for OpenAPI documentation only.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_lookup_service, get_record_store
from app.exceptions import NotFoundError
from app.schemas.shipment import ErrorResponse, ShipmentRecord, UpsertResponse
from app.services.lookup_service import LookupService
from app.services.record_store import TRACKING_FIELD, RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Shipments"])


@router.post(
    "/shipments",
    status_code=201,
    response_model=UpsertResponse,
    responses={
        400: {"description": "trackingNumber missing", "model": ErrorResponse},
        500: {"description": "Data file could not be written", "model": ErrorResponse},
    },
    summary="Create or replace a shipment",
)
async def upsert_shipment(
    record: Dict[str, Any] = Body(..., description="Full shipment record"),
    store: RecordStore = Depends(get_record_store),
) -> UpsertResponse:
    stored = await store.upsert(record.get(TRACKING_FIELD), record)
    return UpsertResponse(ok=True, trackingNumber=stored[TRACKING_FIELD])


@router.put(
    "/shipments/{tracking}",
    responses={
        200: {"description": "Merged shipment record", "model": ShipmentRecord},
        400: {"description": "Attempt to change trackingNumber", "model": ErrorResponse},
        404: {"description": "Shipment not found", "model": ErrorResponse},
    },
    summary="Partially update a shipment",
    description=(
        "Fields in the body override the stored ones; fields not in the body "
        "are kept. The tracking number itself cannot be changed."
    ),
)
async def update_shipment(
    tracking: str,
    partial: Dict[str, Any] = Body(..., description="Fields to change"),
    store: RecordStore = Depends(get_record_store),
) -> JSONResponse:
    merged = await store.merge(tracking, partial)
    return JSONResponse(content=merged)


@router.get(
    "/shipments",
    responses={200: {"description": "All shipments", "model": List[ShipmentRecord]}},
    summary="List all shipments",
)
async def list_shipments(
    store: RecordStore = Depends(get_record_store),
) -> JSONResponse:
    records = await store.list()
    return JSONResponse(content=records, headers={"X-Total-Count": str(len(records))})


@router.get(
    "/shipments/{tracking}",
    responses={
        200: {"description": "Shipment record", "model": ShipmentRecord},
        404: {"description": "Shipment not found", "model": ErrorResponse},
    },
    summary="Get a single shipment",
)
async def get_shipment(
    tracking: str,
    lookup: LookupService = Depends(get_lookup_service),
) -> JSONResponse:
    shipment = await lookup.resolve(tracking)
    if shipment is None:
        raise NotFoundError(resource_id=tracking)
    return JSONResponse(content=shipment)
