"""Environment probe capabilities: ping, reverse DNS, neighbour table and TCP connect."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
import logging
import platform
import re
import socket
import subprocess
import time
from typing import Protocol

logger = logging.getLogger(__name__)

_RTT_PATTERN = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)
_NEIGHBOUR_PATTERN = re.compile(r"(\d+\.\d+\.\d+\.\d+).*?(([0-9a-fA-F]{1,2}[:-]){5}[0-9a-fA-F]{1,2})")
_EMPTY_MACS = {"00:00:00:00:00:00", "FF:FF:FF:FF:FF:FF"}


@dataclass(slots=True, frozen=True)
class Reachability:
    reachable: bool
    round_trip_ms: float | None = None


class ProbeCapabilities(Protocol):
    """Network primitives a host probe needs from its environment."""

    def check_reachable(self, ip: str, timeout_ms: int) -> Reachability: ...

    def resolve_hostname(self, ip: str, timeout_ms: int) -> str | None: ...

    def lookup_mac_address(self, ip: str, timeout_ms: int) -> str | None: ...

    def try_connect(self, ip: str, port: int, timeout_ms: int) -> bool: ...


def normalize_mac(value: str | None) -> str:
    if not value:
        return ""
    parts = re.split(r"[:-]", value.strip())
    if len(parts) == 6 and all(1 <= len(part) <= 2 for part in parts):
        return ":".join(part.zfill(2) for part in parts).upper()
    compact = re.sub(r"[^0-9A-Fa-f]", "", value)
    if len(compact) != 12:
        return value.upper().strip()
    return ":".join(compact[index : index + 2] for index in range(0, 12, 2)).upper()


def parse_neighbour_lines(lines: list[str]) -> dict[str, str]:
    """Map IPs to MACs from ``ip neigh`` or ``arp -a`` output lines."""
    discovered: dict[str, str] = {}
    for line in lines:
        match = _NEIGHBOUR_PATTERN.search(line)
        if not match:
            continue
        mac = normalize_mac(match.group(2))
        if mac in _EMPTY_MACS:
            continue
        discovered[match.group(1)] = mac
    return discovered


def parse_round_trip(output: str) -> float | None:
    """Extract the reply time in milliseconds from ping output."""
    match = _RTT_PATTERN.search(output or "")
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def build_ping_command(ip: str, timeout_ms: int, system: str | None = None) -> list[str]:
    system = (system or platform.system()).lower()
    if "windows" in system:
        return ["ping", "-n", "1", "-w", str(int(timeout_ms)), ip]
    if "darwin" in system:
        return ["ping", "-c", "1", "-W", str(int(timeout_ms)), ip]
    return ["ping", "-c", "1", "-W", str(max(1, round(timeout_ms / 1000))), ip]


class SystemProbes:
    """Probe capabilities backed by the host operating system."""

    def __init__(self, resolver_workers: int = 16) -> None:
        self._resolver = ThreadPoolExecutor(max_workers=resolver_workers, thread_name_prefix="dns-resolve")

    def check_reachable(self, ip: str, timeout_ms: int) -> Reachability:
        cmd = build_ping_command(ip, timeout_ms)
        started = time.perf_counter()
        try:
            proc = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout_ms / 1000.0 + 1.0,
            )
        except subprocess.TimeoutExpired:
            return Reachability(False)
        except OSError as exc:
            logger.debug("ping unavailable for %s: %s", ip, exc)
            return Reachability(False)

        # Windows ping exits 0 on "Destination host unreachable" replies.
        if proc.returncode != 0 or "unreachable" in (proc.stdout or "").lower():
            return Reachability(False)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        round_trip = parse_round_trip(proc.stdout)
        return Reachability(True, round_trip if round_trip is not None else round(elapsed_ms, 3))

    def resolve_hostname(self, ip: str, timeout_ms: int) -> str | None:
        """Reverse-resolve ``ip``; ``None`` on failure or when the lookup outlasts ``timeout_ms``."""
        future = self._resolver.submit(socket.gethostbyaddr, ip)
        try:
            return future.result(timeout=timeout_ms / 1000.0)[0]
        except FutureTimeoutError:
            future.cancel()
            logger.debug("Reverse lookup for %s exceeded %d ms", ip, timeout_ms)
            return None
        except (socket.herror, socket.gaierror, OSError):
            return None

    def lookup_mac_address(self, ip: str, timeout_ms: int) -> str | None:
        """Read ``ip``'s entry from the OS neighbour cache; ``None`` when absent.

        All commands together share the ``timeout_ms`` budget.
        """
        deadline = time.monotonic() + timeout_ms / 1000.0
        commands: list[list[str]] = [["ip", "neigh", "show", ip], ["arp", "-n", ip], ["arp", "-a", ip]]
        for cmd in commands:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.debug("Neighbour lookup for %s exceeded %d ms", ip, timeout_ms)
                break
            try:
                proc = subprocess.run(cmd, check=False, capture_output=True, text=True, timeout=remaining)
            except (OSError, subprocess.TimeoutExpired):
                continue
            if proc.returncode != 0 and not proc.stdout:
                continue
            mac = parse_neighbour_lines((proc.stdout or "").splitlines()).get(ip)
            if mac:
                return mac
        return None

    def try_connect(self, ip: str, port: int, timeout_ms: int) -> bool:
        if port < 0 or port > 65535:
            return False
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.settimeout(timeout_ms / 1000.0)
                return sock.connect_ex((ip, port)) == 0
        except OSError:
            return False
