"""Beam: short-lived video sharing server."""

__version__ = "0.1.0"
