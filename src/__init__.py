"""Resilient content-search & session-pagination engine."""

__version__ = "1.0.0"
