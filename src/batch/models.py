# src/batch/models.py — v1
"""Streaming progress model."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class StreamingProgress(BaseModel):
    """Progress of a chunked run, published after every finished chunk."""

    processed_chunks: int = 0
    total_chunks: int = 0
    processed_items: int = 0
    total_items: int = 0
    status: Literal["idle", "processing", "completed", "error"] = "idle"
    elapsed_s: float = 0.0
    estimated_time_remaining_s: float | None = None

    @property
    def percent(self) -> float:
        if self.total_chunks == 0:
            return 0.0
        return round(self.processed_chunks / self.total_chunks * 100, 1)
