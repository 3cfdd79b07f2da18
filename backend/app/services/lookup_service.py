"""
AGE-MATE Tracking Backend — Lookup Resolver
============================================

What:  Finds the shipment a client is asking about.
How:   1. exact primary-key match
       2. otherwise the first record (store iteration order) whose own
          trackingNumber field equals the identifier

The second step covers records that were stored under a key different from
their declared tracking number, e.g. data files edited by hand or written by
older versions of the importer.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from app.services.record_store import TRACKING_FIELD, RecordStore

logger = logging.getLogger(__name__)


def resolve_shipment(
    records: Mapping[str, Dict[str, Any]],
    identifier: Optional[str],
) -> Optional[Dict[str, Any]]:
    """Resolve identifier against an already loaded store snapshot."""
    if not identifier:
        return None

    record = records.get(identifier)
    if record is not None:
        return record

    for candidate in records.values():
        if candidate.get(TRACKING_FIELD) == identifier:
            logger.debug("Resolved %s through embedded trackingNumber", identifier)
            return candidate

    return None


class LookupService:
    """Resolver bound to a RecordStore; loads a fresh snapshot per call."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def resolve(self, identifier: Optional[str]) -> Optional[Dict[str, Any]]:
        if not identifier:
            return None
        records = await self.store.load()
        return resolve_shipment(records, identifier)
