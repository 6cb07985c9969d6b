"""Scan configuration and per-host result records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .errors import ConfigurationError
from .ip_utils import is_contiguous_mask, number_to_text, text_to_number

DEFAULT_TIMEOUT_MS = 1000

# Keys posted by the legacy desktop shell.
_LEGACY_KEYS = {
    "startIp": "start_address",
    "endIp": "end_address",
    "subnet": "subnet_address",
    "subnetMask": "subnet_mask",
    "additionalPorts": "extra_ports",
    "timeout": "per_host_timeout_ms",
}


def _unique_ports(ports: Iterable[Any]) -> tuple[int, ...]:
    seen: dict[int, None] = {}
    for port in ports:
        if isinstance(port, bool):
            raise ConfigurationError(f"invalid port: {port!r}")
        try:
            value = int(port)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid port: {port!r}") from exc
        if value < 0 or value > 65535:
            raise ConfigurationError(f"port out of range: {value}")
        seen.setdefault(value, None)
    return tuple(seen)


@dataclass(slots=True)
class ScanConfiguration:
    """What to scan and how long each probe may take.

    Exactly one addressing mode must be set: either ``start_address`` and
    ``end_address`` (inclusive range), or ``subnet_address`` and
    ``subnet_mask``.
    """

    start_address: str | None = None
    end_address: str | None = None
    subnet_address: str | None = None
    subnet_mask: str | None = None
    extra_ports: tuple[int, ...] = ()
    per_host_timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        self.extra_ports = _unique_ports(self.extra_ports)

    @property
    def mode(self) -> str:
        if self.subnet_address is not None or self.subnet_mask is not None:
            return "subnet"
        return "range"

    @property
    def timeout_seconds(self) -> float:
        return self.per_host_timeout_ms / 1000.0

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` unless the configuration can be scanned."""
        has_range = self.start_address is not None or self.end_address is not None
        has_subnet = self.subnet_address is not None or self.subnet_mask is not None
        if has_range and has_subnet:
            raise ConfigurationError("range and subnet addressing are mutually exclusive")
        if not has_range and not has_subnet:
            raise ConfigurationError("either an address range or a subnet is required")

        if has_range:
            fields = {"start_address": self.start_address, "end_address": self.end_address}
        else:
            fields = {"subnet_address": self.subnet_address, "subnet_mask": self.subnet_mask}
        for name, value in fields.items():
            if value is None:
                raise ConfigurationError(f"{name} is required in {self.mode} mode")
            if not isinstance(value, str):
                raise ConfigurationError(f"{name} must be dotted-quad text, got {value!r}")
            try:
                text_to_number(value)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from exc

        if has_subnet and not is_contiguous_mask(text_to_number(self.subnet_mask)):
            raise ConfigurationError(f"subnet mask is not contiguous: {self.subnet_mask}")

        if isinstance(self.per_host_timeout_ms, bool) or not isinstance(self.per_host_timeout_ms, int):
            raise ConfigurationError(f"per_host_timeout_ms must be an integer, got {self.per_host_timeout_ms!r}")
        if self.per_host_timeout_ms <= 0:
            raise ConfigurationError("per_host_timeout_ms must be greater than zero")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScanConfiguration:
        """Build a configuration from snake_case or legacy camelCase keys."""
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _LEGACY_KEYS.get(key, key)
            if name in cls.__dataclass_fields__:
                values[name] = value

        # The legacy shell always sends startIp/endIp, even for subnet scans.
        if values.get("subnet_address") and values.get("subnet_mask"):
            values.pop("start_address", None)
            values.pop("end_address", None)

        for key in ("start_address", "end_address", "subnet_address", "subnet_mask"):
            if values.get(key) == "":
                values[key] = None
        values["extra_ports"] = tuple(values.get("extra_ports") or ())
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_address": self.start_address,
            "end_address": self.end_address,
            "subnet_address": self.subnet_address,
            "subnet_mask": self.subnet_mask,
            "extra_ports": list(self.extra_ports),
            "per_host_timeout_ms": self.per_host_timeout_ms,
        }


@dataclass(slots=True, frozen=True)
class HostProbeResult:
    """Outcome of probing one address."""

    address: int
    is_reachable: bool
    hostname: str | None = None
    mac_address: str | None = None
    open_ports: tuple[int, ...] = field(default_factory=tuple)
    round_trip_ms: float | None = None

    @property
    def ip(self) -> str:
        return number_to_text(self.address)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "hostname": self.hostname,
            "mac_address": self.mac_address,
            "is_reachable": self.is_reachable,
            "open_ports": list(self.open_ports),
            "round_trip_ms": self.round_trip_ms,
        }


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """Batch-level progress of a running scan."""

    completed_count: int
    total_count: int
    last_address: int

    @property
    def last_ip(self) -> str:
        return number_to_text(self.last_address)
