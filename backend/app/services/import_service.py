"""
AGE-MATE Tracking Backend — Bulk CSV Importer
==============================================

What:  Turns an uploaded CSV file into shipment upserts.
Why:   Administrators maintain shipments in spreadsheets and push them in bulk.
How:   parse_csv() converts text into an ordered list of flat row mappings;
       import_rows() merges each row into the store under one lock and one
       write for the whole batch.
Who:   Called by POST /api/import-csv.

Row Processing (in input order):
    1. Key = first non-empty of trackingNumber → tracking → id
    2. No key → error {row, "missing trackingNumber"}, row skipped
    3. quantity / cbm converted to numbers when they parse cleanly
    4. Row merged over the existing record, trackingNumber forced to the key
    5. imported += 1

    Row numbers are 1-based positions in the parsed row sequence, skipped rows
    included, so an error can be traced back to the spreadsheet line.

A bad row never aborts the batch. Only an unparsable upload (wrong encoding,
broken quoting, ragged columns) is rejected as a whole.
"""

import csv
import io
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.exceptions import ValidationError
from app.schemas.shipment import ImportResponse, ImportRowError
from app.services.record_store import TRACKING_FIELD, RecordStore, normalize_tracking_number

logger = logging.getLogger(__name__)

# Checked in priority order; the first non-empty value becomes the key
KEY_CANDIDATES = ("trackingNumber", "tracking", "id")

# Fields that become numbers when the cell holds a well-formed number
NUMERIC_FIELDS = ("quantity", "cbm")

MISSING_KEY_ERROR = "missing trackingNumber"

_INT_RE = re.compile(r"[+-]?\d+")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def coerce_number(value: Any) -> Any:
    """
    Convert a numeric-looking string to int/float, otherwise return it as-is.

    >>> coerce_number("12")
    12
    >>> coerce_number("2.5")
    2.5
    >>> coerce_number("12 boxes")
    '12 boxes'
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return value
    if _INT_RE.fullmatch(text):
        return int(text)
    if _NUMBER_RE.fullmatch(text):
        return float(text)
    return value


def parse_csv(content: bytes) -> List[Dict[str, str]]:
    """
    Parse an uploaded CSV payload into row mappings keyed by the header row.

    Headers and values are trimmed, blank lines are skipped, and a UTF-8 BOM
    is tolerated.

    Raises:
        ValidationError if the payload is not UTF-8, is malformed CSV, or has
        a row whose column count does not match the header.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValidationError(
            message="failed to parse csv: file is not valid UTF-8",
            field="file",
            context={"error": str(e)},
        )

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    header: Optional[List[str]] = None
    rows: List[Dict[str, str]] = []
    try:
        for cells in reader:
            values = [cell.strip() for cell in cells]
            if not any(values):
                continue
            if header is None:
                header = values
                continue
            if len(values) != len(header):
                raise ValidationError(
                    message=(
                        f"failed to parse csv: line {reader.line_num} has {len(values)} "
                        f"fields, expected {len(header)}"
                    ),
                    field="file",
                    context={"line": reader.line_num},
                )
            rows.append(dict(zip(header, values)))
    except csv.Error as e:
        raise ValidationError(
            message=f"failed to parse csv: {e}",
            field="file",
            context={"line": reader.line_num},
        )

    return rows


def resolve_row_key(row: Mapping[str, Any]) -> Optional[str]:
    for field in KEY_CANDIDATES:
        key = normalize_tracking_number(row.get(field))
        if key is not None:
            return key
    return None


class ImportService:
    """Applies parsed CSV rows to a RecordStore."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def import_rows(self, rows: Sequence[Mapping[str, Any]]) -> ImportResponse:
        """
        Merge every row into the store and persist once.

        Returns:
            ImportResponse with the number of imported rows and the ordered
            per-row errors.
        """
        errors: List[ImportRowError] = []
        imported = 0

        async with self.store.mutate() as records:
            for index, row in enumerate(rows, start=1):
                key = resolve_row_key(row)
                if key is None:
                    errors.append(ImportRowError(row=index, error=MISSING_KEY_ERROR))
                    continue

                fields = dict(row)
                for name in NUMERIC_FIELDS:
                    if fields.get(name):
                        fields[name] = coerce_number(fields[name])

                existing = records.get(key, {})
                records[key] = {**existing, **fields, TRACKING_FIELD: key}
                imported += 1

        logger.info("CSV import finished: %d imported, %d rejected", imported, len(errors))
        return ImportResponse(ok=True, imported=imported, errors=errors)

    async def import_csv(self, content: bytes) -> ImportResponse:
        rows = parse_csv(content)
        logger.info("Parsed %d CSV rows (%d bytes)", len(rows), len(content))
        return await self.import_rows(rows)
