# src/__init__.py — v1
"""rateshop — multi-carrier rate shopping and savings analysis engine."""

from rateshop.version import __version__

__all__ = ["__version__"]
