# src/storage/report_writer.py — v1
"""Persist finalized runs as JSON and read them back."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from rateshop.core.models import AnalysisRun

logger = logging.getLogger(__name__)


def write_report(run: AnalysisRun, path: Path | str) -> Path:
    """Write the AnalysisRun as indented JSON; parent directories are created."""
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(run.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Report %s written to %s", run.run_id, p)
    return p


def load_report(path: Path | str) -> AnalysisRun:
    return AnalysisRun.model_validate_json(Path(path).expanduser().read_text(encoding="utf-8"))


def write_failed_rows(run: AnalysisRun, path: Path | str) -> Path:
    """Write the raw rows of orphaned shipments, ready to fix and resubmit."""
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(run.failed_rows(), indent=2, default=str), encoding="utf-8")
    return p
