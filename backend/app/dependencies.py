"""
AGE-MATE Tracking Backend — Request Dependencies
=================================================

What:  FastAPI dependencies that hand the per-process services to routes.
Why:   The RecordStore and ReceiptRenderer are built once by create_app()
       with an explicit configuration and kept on app.state. Routes receive
       them through Depends() instead of importing module-level singletons,
       so tests can build an app around a temporary data file.

Example usage in a route:
    @router.post("/track")
    async def track(lookup: LookupService = Depends(get_lookup_service)):
        ...
"""

from fastapi import Request

from app.services.import_service import ImportService
from app.services.lookup_service import LookupService
from app.services.receipt_service import ReceiptRenderer
from app.services.record_store import RecordStore


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_lookup_service(request: Request) -> LookupService:
    return LookupService(get_record_store(request))


def get_import_service(request: Request) -> ImportService:
    return ImportService(get_record_store(request))


def get_receipt_renderer(request: Request) -> ReceiptRenderer:
    return request.app.state.receipt_renderer
