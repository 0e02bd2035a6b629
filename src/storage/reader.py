# src/storage/reader.py — v1
"""Load analysis inputs from JSON files.

Shipment files hold a list of raw row objects (or {"shipments": [...]});
mapping and carrier files hold a list (or {"mappings"/"carriers": [...]}).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rateshop.carriers.models import CarrierConfig
from rateshop.core.models import FieldMap, ServiceMapping


def _load_list(path: Path | str, key: str) -> list[Any]:
    data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list or an object with {key!r}")
    return data


def load_shipments(path: Path | str) -> list[dict[str, Any]]:
    rows = _load_list(path, "shipments")
    if not all(isinstance(r, dict) for r in rows):
        raise ValueError(f"{path}: every shipment must be a JSON object")
    return rows


def load_mappings(path: Path | str) -> list[ServiceMapping]:
    return [ServiceMapping(**m) for m in _load_list(path, "mappings")]


def load_carriers(path: Path | str) -> list[CarrierConfig]:
    return [CarrierConfig(**c) for c in _load_list(path, "carriers")]


def load_field_map(path: Path | str) -> FieldMap:
    data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    return FieldMap(**data)
