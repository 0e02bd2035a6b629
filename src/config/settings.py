# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: retry
bound, streaming thresholds, telemetry window sizes and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Retry ===
    max_retries: int = 2
    retry_jitter: bool = False

    # === Streaming ===
    streaming_threshold: int = 1000
    stream_chunk_size: int = 500
    max_concurrent_chunks: int = 3

    # === Telemetry ===
    telemetry_window_size: int = 100
    telemetry_carrier_window_size: int = 20

    # === Quoting ===
    quote_alternate_services: bool = True
    default_country: str = "US"
    carrier_http_timeout_s: float = 30.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    @field_validator(
        "streaming_threshold",
        "stream_chunk_size",
        "max_concurrent_chunks",
        "telemetry_window_size",
        "telemetry_carrier_window_size",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("carrier_http_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("carrier_http_timeout_s must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.telemetry_carrier_window_size > self.telemetry_window_size:
            errors.append(
                "TELEMETRY_CARRIER_WINDOW_SIZE must be <= TELEMETRY_WINDOW_SIZE"
            )

        if self.stream_chunk_size > self.streaming_threshold:
            errors.append("STREAM_CHUNK_SIZE must be <= STREAMING_THRESHOLD")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
