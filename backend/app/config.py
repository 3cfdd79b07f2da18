"""
AGE-MATE Tracking Backend — Application Configuration
======================================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py and the services; tests build their own Settings.

The only value operators normally touch is PORT; everything else has a
sensible default for a single-node deployment.
"""

from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    # What: Listening port, read from the PORT environment variable
    port: int = Field(default=3000, ge=1, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── CORS ──────────────────────────────────────────────────────────────
    # What: Comma-separated allowed origins; "*" allows any origin
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Persistence ───────────────────────────────────────────────────────
    # What: JSON file holding the tracking number → shipment mapping
    # The temporary file used for atomic replace lives next to it (<file>.tmp)
    data_file: str = Field(default="./data/tracking-data.json")

    @property
    def data_path(self) -> Path:
        return Path(self.data_file)

    # ── Bulk Import ───────────────────────────────────────────────────────
    # What: Largest CSV upload accepted by POST /api/import-csv (bytes)
    max_import_size: int = Field(default=5_242_880, ge=1024, le=104_857_600)

    # ── Receipts ──────────────────────────────────────────────────────────
    # What: Rasterization resolution and JPEG quality for /jpeg receipts
    raster_dpi: int = Field(default=150, ge=36, le=600)
    jpeg_quality: int = Field(default=85, ge=1, le=100)

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # PORT and port both work
        "extra": "ignore",
    }


# Singleton instance used when no explicit Settings is passed to create_app()
settings = Settings()
