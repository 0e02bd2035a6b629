# src/taxonomy/__init__.py — v1
