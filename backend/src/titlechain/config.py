"""
Application configuration loaded from environment variables.

All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with validation.

    All settings are loaded from environment variables prefixed with
    ``TITLECHAIN_``. Use .env file for local development.
    """

    model_config = SettingsConfigDict(
        env_prefix="TITLECHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Ledger
    seed_demo_data: bool = Field(
        default=True,
        description="Pre-load the two demo closings (TX-2024-8492, TX-2024-9921)",
    )

    # Audit sink
    audit_database_url: str | None = Field(
        default=None,
        description="SQLAlchemy async URL for persisted audit records "
                    "(e.g. sqlite+aiosqlite:///./audit.db). Disabled if unset.",
    )
    audit_log_path: Path | None = Field(
        default=None,
        description="JSON-lines file receiving audit notifications",
    )
    audit_hash_prefix_length: int = Field(
        default=16,
        ge=8,
        le=64,
        description="How many hex characters of a document hash the audit trail keeps",
    )

    # Uploads
    max_upload_bytes: int = Field(
        default=25 * 1024 * 1024,
        gt=0,
        description="Largest file accepted for upload or verification",
    )

    # E-signature
    esignature_webhook_secret: str | None = Field(
        default=None,
        description="HMAC key for e-signature completion webhooks (unsigned calls rejected if set)",
    )

    # Server
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    debug: bool = Field(
        default=False,
        description="Enable debug mode with detailed error messages",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once at startup and cached for subsequent calls.
    """
    return Settings()
