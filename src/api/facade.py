# src/api/facade.py — v1
"""Public API facade — single entry point for a rate-shopping analysis.

Usage:
    from rateshop.api.facade import analyze_shipments
    run = await analyze_shipments(request)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from rateshop.api.models import AnalysisRequest, ConfigOverrides
from rateshop.batch.stream_processor import ProgressCallback
from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.carriers.client_factory import create_carrier_clients
from rateshop.config.settings import Settings, load_settings
from rateshop.core.models import AnalysisRun
from rateshop.pipeline.engine import AnalysisEngine
from rateshop.telemetry.window import TelemetryWindow

logger = logging.getLogger(__name__)


async def analyze_shipments(
    request: AnalysisRequest,
    settings: Settings | None = None,
    clients: list[BaseCarrierClient] | None = None,
    telemetry: TelemetryWindow | None = None,
    on_progress: ProgressCallback | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AnalysisRun:
    """Analyze a shipment set end-to-end and return the finalized run.

    Steps:
      1. Resolve settings and apply per-run overrides
      2. Build carrier clients for the active carrier configs
      3. Run the engine (validate, quote, select, aggregate)
      4. Close the clients this call created

    Args:
        request: Shipments, confirmed mappings and carrier accounts.
        settings: Global settings. Loaded from .env if None.
        clients: Pre-built carrier clients; built from request.carriers if None.
        telemetry: Shared telemetry window, e.g. to warm-start the planner.
        on_progress: Called with (processed_chunks, total_chunks).
        sleep: Async sleep for backoff and inter-batch delays.

    Raises:
        NoCarrierConfiguredError: No active, correctly configured carrier account.
        ConfigurationError: Overrides make the settings inconsistent.
    """
    settings = _apply_overrides(settings or load_settings(), request.config_overrides)

    owned = clients is None
    carrier_clients = clients if clients is not None else create_carrier_clients(
        request.carriers, settings,
    )
    logger.info(
        "Starting analysis: %d shipment(s), %d carrier client(s)",
        len(request.shipments), len(carrier_clients),
    )

    engine = AnalysisEngine(
        carriers=carrier_clients,
        mappings=request.service_mappings,
        settings=settings,
        telemetry=telemetry,
        field_map=request.field_map,
        sleep=sleep,
    )
    try:
        return await engine.run(request.shipments, on_progress=on_progress, run_id=request.run_id)
    finally:
        if owned:
            for client in carrier_clients:
                await client.aclose()


def _apply_overrides(settings: Settings, overrides: ConfigOverrides | None) -> Settings:
    """Apply per-run config overrides if provided."""
    if overrides is None:
        return settings
    values = overrides.model_dump(exclude_none=True)
    if not values:
        return settings
    current = settings.model_dump()
    current.update(values)
    return Settings(_env_file=None, **current)  # type: ignore[call-arg]
