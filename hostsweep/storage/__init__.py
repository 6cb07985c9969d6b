"""Persistence helpers for preferences, the last scan configuration and scan history."""

from .preferences import (
    get_preference,
    list_scan_history,
    load_last_configuration,
    record_scan_history,
    save_last_configuration,
    set_preference,
)

__all__ = [
    "get_preference",
    "set_preference",
    "load_last_configuration",
    "save_last_configuration",
    "record_scan_history",
    "list_scan_history",
]
