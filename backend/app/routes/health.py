"""
AGE-MATE Tracking Backend — Health Check Route
===============================================

What:  GET /health for container probes and uptime monitoring.
How:   Reports whether the data file can be parsed. A missing or corrupt
       file does not stop the service (it serves an empty store), so the
       status is "degraded" rather than an error code.
"""

import logging
import time

from fastapi import APIRouter, Depends

from app import __version__
from app.dependencies import get_record_store
from app.schemas.shipment import HealthResponse
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(store: RecordStore = Depends(get_record_store)) -> HealthResponse:
    data_status = await store.health()
    if data_status != "ok":
        logger.warning("Health check: data file %s is %s", store.data_path, data_status)

    return HealthResponse(
        status="healthy" if data_status == "ok" else "degraded",
        version=__version__,
        data_file=data_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
