"""Aegis — response quality scoring and privacy compliance engine."""

__version__ = "0.1.0"
