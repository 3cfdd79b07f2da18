"""
AGE-MATE Tracking Backend — Pydantic Request/Response Schemas
==============================================================

What:  Pydantic models describing the API contract.
Why:   Response validation and OpenAPI docs. Shipment records themselves are
       open-ended, so ShipmentRecord lists the recognized fields and lets any
       extra field through unchanged.

Field names use the camelCase keys clients and the persisted JSON already
use (trackingNumber, goodsDescription, ...), not Python snake_case.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A value stored as a number when it parsed cleanly, otherwise the raw text
NumericOrText = Union[int, float, str]


# ══════════════════════════════════════════════════════════════════════════
# Shipment Records
# ══════════════════════════════════════════════════════════════════════════


class ShipmentRecord(BaseModel):
    """
    One shipment as stored and returned by the API.

    Only trackingNumber is required. Unknown fields are accepted and echoed
    back verbatim.
    """

    model_config = ConfigDict(extra="allow")

    trackingNumber: str = Field(description="Primary key of the shipment")
    status: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    userName: Optional[str] = None
    loadingDate: Optional[str] = None
    phone: Optional[str] = None
    goodsDescription: Optional[str] = None
    containerNumber: Optional[str] = None
    quantity: Optional[NumericOrText] = None
    cbm: Optional[NumericOrText] = None
    ratePerCbm: Optional[NumericOrText] = None
    totalAmount: Optional[NumericOrText] = None


class TrackRequest(BaseModel):
    """Body of POST /api/track."""

    tracking: Optional[str] = Field(default="", description="Tracking number to look up")

    @field_validator("tracking", mode="before")
    @classmethod
    def numeric_tracking_as_text(cls, v):
        """Numeric identifiers from JSON clients are looked up as text."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class UpsertResponse(BaseModel):
    """Returned by POST /api/shipments with HTTP 201."""

    ok: bool = True
    trackingNumber: str


# ══════════════════════════════════════════════════════════════════════════
# Bulk Import
# ══════════════════════════════════════════════════════════════════════════


class ImportRowError(BaseModel):
    """A rejected CSV row; `row` is the 1-based position among parsed rows."""

    row: int = Field(ge=1)
    error: str


class ImportResponse(BaseModel):
    """Result of POST /api/import-csv."""

    ok: bool = True
    imported: int = Field(ge=0, description="Rows merged into the store")
    errors: List[ImportRowError] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Error & Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "shipment with tracking number 'TRK9' was not found",
            "request_id": "1f2e3d4c"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health."""

    status: str = Field(description="healthy or degraded")
    version: str
    data_file: str = Field(description="ok, missing or corrupt")
    uptime_seconds: float
