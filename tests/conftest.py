import threading

import pytest

from hostsweep.scanner.probes import Reachability


class FakeProbes:
    """In-memory probe capabilities keyed by dotted-quad address."""

    def __init__(self, reachable=(), open_ports=None, hostnames=None, macs=None, gate=None):
        self.reachable = set(reachable)
        self.open_ports = {ip: set(ports) for ip, ports in (open_ports or {}).items()}
        self.hostnames = dict(hostnames or {})
        self.macs = dict(macs or {})
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def _log(self, *call):
        with self._lock:
            self.calls.append(call)

    def check_reachable(self, ip, timeout_ms):
        self._log("ping", ip)
        if self.gate is not None:
            self.gate.wait(5)
        if ip in self.reachable:
            return Reachability(True, 1.5)
        return Reachability(False)

    def resolve_hostname(self, ip, timeout_ms):
        self._log("dns", ip)
        return self.hostnames.get(ip)

    def lookup_mac_address(self, ip, timeout_ms):
        self._log("mac", ip)
        return self.macs.get(ip)

    def try_connect(self, ip, port, timeout_ms):
        self._log("connect", ip, port)
        return port in self.open_ports.get(ip, set())

    def called(self, kind):
        with self._lock:
            return [call for call in self.calls if call[0] == kind]


@pytest.fixture
def fake_probes():
    return FakeProbes


class EventCollector:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)

    def of_type(self, kind):
        with self._lock:
            return [event for event in self.events if isinstance(event, kind)]


@pytest.fixture
def collector():
    return EventCollector()
