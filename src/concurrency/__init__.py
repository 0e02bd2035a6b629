# src/concurrency/__init__.py — v1
