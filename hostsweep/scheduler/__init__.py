"""Recurring scan scheduling."""

from .jobs import build_scheduler, get_schedule_events, log_schedule_event, schedule_recurring_scan, trigger_scan

__all__ = [
    "build_scheduler",
    "get_schedule_events",
    "log_schedule_event",
    "schedule_recurring_scan",
    "trigger_scan",
]
