"""
AGE-MATE Tracking Backend — Record Store (JSON File Persistence)
=================================================================

What:  Owns the on-disk mapping of tracking number → shipment record.
Why:   The whole dataset is small enough to live in a single human-readable
       JSON file; this class is the only writer of that file.
How:   Every operation loads the full mapping; every mutation rewrites the
       full mapping via write-to-temp-then-rename.
Who:   Constructed once by create_app() and handed to routes through
       FastAPI's dependency injection (see app/dependencies.py).

Persistence Model:
    data/
    ├── tracking-data.json       ← the store (pretty-printed, 2-space indent)
    └── tracking-data.json.tmp   ← transient, exists only during save()

    save() writes the complete payload to the .tmp sibling and then calls
    os.replace(), which is atomic on POSIX and Windows when both paths are on
    the same filesystem. A reader therefore sees either the old file or the
    new file, never a half-written one. The temp file is fsynced before the
    rename, so a power loss cannot leave the new name pointing at missing
    data. If the process dies before the rename, the original file is
    untouched.

Concurrency:
    Each load-modify-save cycle runs under a single asyncio.Lock. Two
    concurrent upserts are applied one after another instead of racing with
    last-write-wins at whole-file granularity. Reads (get/list) do not take
    the lock; the atomic rename already guarantees they see a complete file.

Failure Semantics:
    Read side:  missing / unreadable / corrupt file → empty store + WARNING log
    Write side: OSError → PersistenceWriteError (no retry)
    Input:      NaN / Infinity values → ValidationError before any write
"""

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import aiofiles

from app.exceptions import NotFoundError, PersistenceWriteError, ValidationError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Records = Dict[str, Record]

TRACKING_FIELD = "trackingNumber"


def normalize_tracking_number(value: Any) -> Optional[str]:
    """Return the tracking key as a string, or None when it is absent or blank."""
    if value is None or isinstance(value, bool):
        return None
    key = value if isinstance(value, str) else str(value)
    return key if key.strip() else None


def ensure_json_compliant(record: Record) -> None:
    """
    Reject values that cannot be written as standard JSON.

    Request bodies may carry NaN or Infinity; once saved they would make every
    later read of the store fail to serialize.
    """
    try:
        json.dumps(record, allow_nan=False)
    except ValueError as e:
        raise ValidationError(
            message="Record contains values that are not valid JSON (NaN or Infinity)",
            context={"reason": str(e)},
        )


class RecordStore:
    """
    Flat key-value store of shipment records backed by one JSON file.

    Invariant:
        For every entry written through this class,
        records[key]["trackingNumber"] == key.
    """

    def __init__(self, data_file: Union[str, Path]):
        self.data_path = Path(data_file)
        self.tmp_path = self.data_path.with_name(self.data_path.name + ".tmp")
        self._lock = asyncio.Lock()

    def initialize(self) -> None:
        """
        Create the data directory and an empty store file if none exists.

        Called once at startup. An existing file is never touched, even if it
        is corrupt; load() copes with that on every request.
        """
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            if not self.data_path.exists():
                self.data_path.write_text(json.dumps({}, indent=2), encoding="utf-8")
                logger.info("Created empty data file at %s", self.data_path)
        except OSError as e:
            raise PersistenceWriteError(
                message="Could not initialize the shipment data file",
                context={"path": str(self.data_path), "os_error": str(e)},
            )

    # ── Raw persistence ───────────────────────────────────────────────────

    async def load(self) -> Records:
        """
        Read the full persisted mapping.

        Never raises: an absent, unreadable or structurally invalid file
        yields an empty mapping so the service stays available.
        """
        try:
            async with aiofiles.open(self.data_path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Data file %s unreadable, using empty store: %s", self.data_path, e)
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Data file %s is not valid JSON, using empty store: %s", self.data_path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning(
                "Data file %s holds %s instead of an object, using empty store",
                self.data_path,
                type(data).__name__,
            )
            return {}

        records: Records = {}
        for key, record in data.items():
            if isinstance(record, dict):
                records[key] = record
            else:
                logger.warning("Skipping malformed entry %r in %s", key, self.data_path)
        return records

    async def save(self, records: Records) -> None:
        """
        Serialize the full mapping and atomically replace the data file.

        Raises:
            PersistenceWriteError if the temp file cannot be written or renamed.
        """
        payload = json.dumps(records, indent=2, ensure_ascii=False, allow_nan=False)
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
                await f.flush()
                os.fsync(f.fileno())
            os.replace(self.tmp_path, self.data_path)
        except OSError as e:
            logger.error("Failed to persist %d records to %s: %s", len(records), self.data_path, e)
            raise PersistenceWriteError(
                context={"path": str(self.data_path), "os_error": str(e)},
            )
        logger.debug("Persisted %d records to %s", len(records), self.data_path)

    @asynccontextmanager
    async def mutate(self) -> AsyncIterator[Records]:
        """
        Critical section for a load-modify-save cycle.

        Yields the freshly loaded mapping; the caller edits it in place. The
        mapping is saved exactly once when the block exits normally. If the
        block raises, nothing is written.

        Usage:
            async with store.mutate() as records:
                records["TRK1"] = {...}
        """
        async with self._lock:
            records = await self.load()
            yield records
            await self.save(records)

    # ── Record operations ─────────────────────────────────────────────────

    async def get(self, tracking_number: str) -> Optional[Record]:
        """Exact primary-key lookup."""
        records = await self.load()
        return records.get(tracking_number)

    async def list(self) -> List[Record]:
        """All records in store iteration order."""
        records = await self.load()
        return list(records.values())

    async def upsert(self, tracking_number: Any, record: Record) -> Record:
        """
        Insert or fully replace the record stored under tracking_number.

        The stored record's trackingNumber is forced to the key so the map
        key and the embedded field cannot disagree.

        Raises:
            ValidationError: tracking_number is missing or blank.
            PersistenceWriteError: the data file could not be written.
        """
        key = normalize_tracking_number(tracking_number)
        if key is None:
            raise ValidationError(message="trackingNumber required", field=TRACKING_FIELD)

        stored = dict(record)
        stored[TRACKING_FIELD] = key
        ensure_json_compliant(stored)
        async with self.mutate() as records:
            created = key not in records
            records[key] = stored

        logger.info("%s shipment %s", "Created" if created else "Replaced", key)
        return stored

    async def merge(self, tracking_number: str, partial: Record) -> Record:
        """
        Shallow-merge partial fields over an existing record.

        Fields present in `partial` override the stored ones; everything else
        is preserved. Changing trackingNumber through a merge is rejected,
        since it would leave the record under a key it no longer declares.

        Raises:
            NotFoundError: no record is stored under tracking_number
                           (no write is performed).
            ValidationError: partial tries to change trackingNumber.
        """
        if TRACKING_FIELD in partial and partial[TRACKING_FIELD] != tracking_number:
            raise ValidationError(
                message="trackingNumber cannot be changed by a partial update",
                field=TRACKING_FIELD,
                context={"key": tracking_number, "requested": partial[TRACKING_FIELD]},
            )

        ensure_json_compliant(partial)

        async with self.mutate() as records:
            existing = records.get(tracking_number)
            if existing is None:
                raise NotFoundError(resource_id=tracking_number)
            merged = {**existing, **partial}
            records[tracking_number] = merged

        logger.info("Updated shipment %s (%d fields)", tracking_number, len(partial))
        return merged

    async def health(self) -> str:
        """
        Describe the state of the data file for the health endpoint.

        Returns "ok", "missing" or "corrupt".
        """
        try:
            async with aiofiles.open(self.data_path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return "missing"
        except (OSError, UnicodeDecodeError):
            return "corrupt"

        try:
            data = json.loads(raw)
        except ValueError:
            return "corrupt"
        return "ok" if isinstance(data, dict) else "corrupt"
