"""Utility helpers."""
from survetic.utils.datetime_helpers import ensure_utc

__all__ = ["ensure_utc"]
