"""Utility helpers for wdngraph (ids, YAML quirks)."""
