"""Staffing back office API: contract lifecycle and inter-firm transfers."""

__version__ = "0.1.0"
