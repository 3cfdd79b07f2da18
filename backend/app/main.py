"""
AGE-MATE Tracking Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the RecordStore and ReceiptRenderer once from the
       given Settings, stores them on app.state, and wires middleware,
       exception handlers and routers.
Who:   uvicorn (`uvicorn app.main:app`, or `python -m app`) and the tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/track            POST /api/shipments         │
    │   PUT  /api/shipments/{t}    GET  /api/shipments[/{t}]   │
    │   POST /api/import-csv       GET  /api/receipt/{t}/pdf   │
    │   GET  /api/receipt/{t}/jpeg GET  /health                │
    │                                                          │
    │  app.state: settings, record_store, receipt_renderer     │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400 │ NotFound→404 │ Render/Persist→500     │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings as default_settings
from app.exceptions import (
    NotFoundError,
    PersistenceWriteError,
    RenderError,
    TrackingError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import health, imports, receipts, shipments, tracking
from app.services.rasterizer_base import Rasterizer
from app.services.receipt_service import PyMuPDFRasterizer, ReceiptRenderer
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging once at startup.

    Format: 2024-01-15T12:00:00 [INFO] app.services.record_store: message
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("AGE-MATE Tracking backend %s starting up...", __version__)
    logger.info("Data file: %s", app.state.record_store.data_path.resolve())
    logger.info("Server ready at http://%s:%d", config.host, config.port)
    logger.info("=" * 60)

    yield

    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

        ValidationError        → 400
        RequestValidationError → 400 (malformed or mistyped request body)
        NotFoundError          → 404
        RenderError            → 500 (details logged, not returned)
        PersistenceWriteError  → 500 (details logged, not returned)
        TrackingError (base)   → 500
        Exception (fallback)   → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Invalid request: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Invalid request body",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(RenderError)
    async def handle_render_error(request: Request, exc: RenderError):
        rid = request_id_var.get("")
        logger.error("[%s] Render error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "render_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(PersistenceWriteError)
    async def handle_persistence_error(request: Request, exc: PersistenceWriteError):
        rid = request_id_var.get("")
        logger.error("[%s] Persistence error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(TrackingError)
    async def handle_tracking_error(request: Request, exc: TrackingError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    rasterizer: Optional[Rasterizer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config:     Settings to use; defaults to the environment-driven
                    singleton. Tests pass one pointing at a temp data file.
        rasterizer: Image backend for JPEG receipts; defaults to PyMuPDF.
    """
    config = config or default_settings

    app = FastAPI(
        title="AGE-MATE Tracking API",
        description=(
            "Shipment tracking lookups, shipment administration, bulk CSV "
            "import and downloadable receipts."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    store = RecordStore(config.data_file)
    store.initialize()

    app.state.settings = config
    app.state.record_store = store
    app.state.receipt_renderer = ReceiptRenderer(
        rasterizer or PyMuPDFRasterizer(dpi=config.raster_dpi, quality=config.jpeg_quality)
    )

    # Middleware executes in reverse order of addition:
    # RequestID → Logging → GZip → CORS
    origins = config.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(tracking.router)
    app.include_router(shipments.router)
    app.include_router(imports.router)
    app.include_router(receipts.router)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
