"""Realtime question extraction from a live audio stream."""

__version__ = "0.1.0"
