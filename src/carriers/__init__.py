# src/carriers/__init__.py — v1
