"""
AGE-MATE Tracking Backend — Custom Exception Hierarchy
=======================================================

What:  Application-specific exceptions for the tracking service.
Why:   Services raise typed errors; global handlers in main.py translate them
       into HTTP status codes and a consistent JSON error body.
How:   Each exception carries a user-facing message and an optional context
       dict (logged server-side, only partially returned to the client).
Who:   Raised by services (record store, importer, renderer); caught by the
       handlers registered in main.py.

Exception Hierarchy:
    TrackingError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── NotFoundError            → 404 Not Found
    ├── RenderError              → 500 Internal Server Error (no retry)
    └── PersistenceWriteError    → 500 Internal Server Error (no retry)

Note:
    There is deliberately no read-side persistence error. A corrupt or
    unreadable data file degrades to an empty store (see RecordStore.load).
"""

from typing import Any, Dict, Optional


class TrackingError(Exception):
    """
    Base exception for all tracking service errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, not necessarily returned)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TrackingError):
    """
    Raised when client input is missing or malformed.

    When:    Empty tracking identifier, upsert without trackingNumber,
             missing or unparsable CSV upload, key change through merge.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "trackingNumber required",
            "details": {"field": "trackingNumber"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(TrackingError):
    """
    Raised when no shipment exists for the given tracking identifier.

    HTTP:    404 Not Found

    The store and resolver return None for missing records; routes and
    RecordStore.merge convert that into this exception so the status code
    stays out of the service logic.
    """

    def __init__(
        self,
        resource: str = "shipment",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with tracking number '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RenderError(TrackingError):
    """
    Raised when receipt rendering or rasterization fails.

    HTTP:    500 Internal Server Error
    Treated as an internal fault: no retry, details are logged only.
    """

    def __init__(
        self,
        message: str = "Failed to generate receipt",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistenceWriteError(TrackingError):
    """
    Raised when the data file cannot be written or replaced.

    When:    Disk full, permission denied, read-only filesystem.
    HTTP:    500 Internal Server Error

    The atomic rename guarantees the previous data file is left intact, so
    the caller can simply surface the error; nothing is retried internally.
    """

    def __init__(
        self,
        message: str = "Failed to persist shipment data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
