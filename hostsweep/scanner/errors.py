"""Exception types raised by the scan engine."""

from __future__ import annotations


class HostSweepError(Exception):
    """Base class for scan engine errors."""


class ConfigurationError(HostSweepError, ValueError):
    """Scan configuration is malformed or selects contradictory addressing modes."""


class AlreadyRunningError(HostSweepError):
    """A scan was started while another one is still running or stopping."""
