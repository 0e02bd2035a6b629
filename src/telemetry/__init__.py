# src/telemetry/__init__.py — v1
