"""Probe a single address: reachability first, then hostname, MAC and ports."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
from typing import Sequence

from .ip_utils import number_to_text
from .models import HostProbeResult, ScanConfiguration
from .probes import ProbeCapabilities, Reachability

logger = logging.getLogger(__name__)


def _check_reachable(probes: ProbeCapabilities, ip: str, timeout_ms: int) -> Reachability:
    try:
        return probes.check_reachable(ip, timeout_ms)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Reachability check failed for %s: %s", ip, exc)
        return Reachability(False)


def _resolve_hostname(probes: ProbeCapabilities, ip: str, timeout_ms: int) -> str:
    try:
        hostname = probes.resolve_hostname(ip, timeout_ms)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Could not resolve hostname for %s: %s", ip, exc)
        hostname = None
    return hostname or ip


def _lookup_mac_address(probes: ProbeCapabilities, ip: str, timeout_ms: int) -> str | None:
    try:
        return probes.lookup_mac_address(ip, timeout_ms) or None
    except Exception as exc:  # noqa: BLE001
        logger.debug("Could not get MAC address for %s: %s", ip, exc)
        return None


def _try_connect(probes: ProbeCapabilities, ip: str, port: int, timeout_ms: int) -> bool:
    try:
        return bool(probes.try_connect(ip, port, timeout_ms))
    except Exception as exc:  # noqa: BLE001
        logger.debug("Port probe %s:%s failed: %s", ip, port, exc)
        return False


def scan_ports(probes: ProbeCapabilities, ip: str, ports: Sequence[int], timeout_ms: int) -> tuple[int, ...]:
    """Try every port concurrently; open ones are returned in the supplied order."""
    if not ports:
        return ()
    with ThreadPoolExecutor(max_workers=len(ports), thread_name_prefix="port-probe") as pool:
        outcomes = list(pool.map(lambda port: _try_connect(probes, ip, port, timeout_ms), ports))
    return tuple(port for port, is_open in zip(ports, outcomes) if is_open)


def probe_host(address: int, config: ScanConfiguration, probes: ProbeCapabilities) -> HostProbeResult:
    """Probe ``address`` and return its result; sub-probe failures only blank their field."""
    ip = number_to_text(address)
    timeout_ms = config.per_host_timeout_ms

    reachability = _check_reachable(probes, ip, timeout_ms)
    if not reachability.reachable:
        return HostProbeResult(address=address, is_reachable=False)

    hostname = _resolve_hostname(probes, ip, timeout_ms)
    mac_address = _lookup_mac_address(probes, ip, timeout_ms)
    open_ports = scan_ports(probes, ip, config.extra_ports, timeout_ms)

    return HostProbeResult(
        address=address,
        is_reachable=True,
        hostname=hostname,
        mac_address=mac_address,
        open_ports=open_ports,
        round_trip_ms=reachability.round_trip_ms,
    )
