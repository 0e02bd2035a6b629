# src/logging/context.py — v1
"""Contextual logging support — attach run_id, shipment, carrier and stage to log records.

Values live in contextvars, so every asyncio task started for a shipment
carries its own copy and concurrent quote calls never mix their context.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_shipment_ref: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "shipment_ref", default=None
)
_carrier: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "carrier", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    shipment_ref: str | None = None
    carrier: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        shipment_ref=_shipment_ref.get(),
        carrier=_carrier.get(),
        stage=_stage.get(),
    )


def set_run_context(run_id: str, stage: str | None = None) -> None:
    """Set run-level context (called once per analysis run)."""
    _run_id.set(run_id)
    _stage.set(stage)


def set_shipment_context(shipment_ref: str, stage: str | None = None) -> None:
    """Set shipment-level context (called inside each shipment task)."""
    _shipment_ref.set(shipment_ref)
    if stage is not None:
        _stage.set(stage)


def set_carrier_context(carrier: str | None) -> None:
    _carrier.set(carrier)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _shipment_ref.set(None)
    _carrier.set(None)
    _stage.set(None)
