# src/api/models.py — v1
"""API-level models: AnalysisRequest and ConfigOverrides."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from rateshop.carriers.models import CarrierConfig
from rateshop.core.models import FieldMap, ServiceMapping


class ConfigOverrides(BaseModel):
    """Per-run overrides — validated subset of Settings."""

    max_retries: int | None = None
    retry_jitter: bool | None = None
    streaming_threshold: int | None = None
    stream_chunk_size: int | None = None
    max_concurrent_chunks: int | None = None
    quote_alternate_services: bool | None = None
    default_country: str | None = None


class AnalysisRequest(BaseModel):
    """Everything one analysis run consumes.

    shipments are raw rows as produced by the upstream CSV step; the
    field_map says which column holds which shipment field.
    """

    shipments: list[dict[str, Any]]
    service_mappings: list[ServiceMapping]
    carriers: list[CarrierConfig]
    field_map: FieldMap = Field(default_factory=FieldMap)
    config_overrides: ConfigOverrides | None = None
    run_id: str | None = None
