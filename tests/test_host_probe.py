import time

from hostsweep.scanner.host_probe import probe_host, scan_ports
from hostsweep.scanner.ip_utils import text_to_number
from hostsweep.scanner.models import ScanConfiguration
from hostsweep.scanner.probes import Reachability


def _config(ports=(), timeout=200):
    return ScanConfiguration(start_address="10.0.0.1", end_address="10.0.0.1", extra_ports=ports, per_host_timeout_ms=timeout)


def test_unreachable_host_is_not_probed_further(fake_probes):
    probes = fake_probes(open_ports={"10.0.0.1": {22}})
    result = probe_host(text_to_number("10.0.0.1"), _config((22,)), probes)

    assert result.is_reachable is False
    assert result.hostname is None
    assert result.mac_address is None
    assert result.open_ports == ()
    assert result.round_trip_ms is None
    assert probes.called("dns") == []
    assert probes.called("mac") == []
    assert probes.called("connect") == []


def test_reachable_host_collects_all_fields(fake_probes):
    probes = fake_probes(
        reachable={"10.0.0.1"},
        hostnames={"10.0.0.1": "nas.lan"},
        macs={"10.0.0.1": "AA:BB:CC:00:11:22"},
        open_ports={"10.0.0.1": {22, 445}},
    )
    result = probe_host(text_to_number("10.0.0.1"), _config((22, 80, 445)), probes)

    assert result.is_reachable is True
    assert result.hostname == "nas.lan"
    assert result.mac_address == "AA:BB:CC:00:11:22"
    assert result.open_ports == (22, 445)
    assert result.round_trip_ms == 1.5


def test_hostname_falls_back_to_address_text(fake_probes):
    probes = fake_probes(reachable={"10.0.0.1"})
    result = probe_host(text_to_number("10.0.0.1"), _config(), probes)
    assert result.hostname == "10.0.0.1"
    assert result.mac_address is None


def test_open_ports_follow_supplied_order(fake_probes):
    probes = fake_probes(reachable={"10.0.0.1"}, open_ports={"10.0.0.1": {80, 443}})
    result = probe_host(text_to_number("10.0.0.1"), _config((443, 22, 80)), probes)
    assert result.open_ports == (443, 80)


class _BrokenProbes:
    def __init__(self, reachable_error=False):
        self.reachable_error = reachable_error

    def check_reachable(self, ip, timeout_ms):
        if self.reachable_error:
            raise RuntimeError("ping binary missing")
        return Reachability(True, 3.0)

    def resolve_hostname(self, ip, timeout_ms):
        raise OSError("dns down")

    def lookup_mac_address(self, ip, timeout_ms):
        raise RuntimeError("no neighbour table")

    def try_connect(self, ip, port, timeout_ms):
        if port == 81:
            raise ConnectionResetError()
        return port == 80


def test_sub_probe_failures_degrade_fields():
    result = probe_host(text_to_number("10.0.0.1"), _config((81, 80)), _BrokenProbes())
    assert result.is_reachable is True
    assert result.hostname == "10.0.0.1"
    assert result.mac_address is None
    assert result.open_ports == (80,)
    assert result.round_trip_ms == 3.0


def test_reachability_error_means_unreachable():
    result = probe_host(text_to_number("10.0.0.1"), _config((80,)), _BrokenProbes(reachable_error=True))
    assert result.is_reachable is False
    assert result.open_ports == ()


class _SlowPorts:
    def try_connect(self, ip, port, timeout_ms):
        time.sleep(0.2)
        return True


def test_ports_are_probed_concurrently():
    started = time.monotonic()
    assert scan_ports(_SlowPorts(), "10.0.0.1", [1, 2, 3, 4, 5], 200) == (1, 2, 3, 4, 5)
    assert time.monotonic() - started < 0.8


def test_no_ports_means_no_connections(fake_probes):
    probes = fake_probes(reachable={"10.0.0.1"})
    probe_host(text_to_number("10.0.0.1"), _config(), probes)
    assert probes.called("connect") == []


class _TimeoutRecorder:
    def __init__(self):
        self.timeouts = {}

    def check_reachable(self, ip, timeout_ms):
        self.timeouts["ping"] = timeout_ms
        return Reachability(True, 1.0)

    def resolve_hostname(self, ip, timeout_ms):
        self.timeouts["dns"] = timeout_ms
        return "host.lan"

    def lookup_mac_address(self, ip, timeout_ms):
        self.timeouts["mac"] = timeout_ms
        return None

    def try_connect(self, ip, port, timeout_ms):
        self.timeouts["connect"] = timeout_ms
        return False


def test_every_step_gets_the_per_host_timeout():
    probes = _TimeoutRecorder()
    probe_host(text_to_number("10.0.0.1"), _config((80,), timeout=350), probes)
    assert probes.timeouts == {"ping": 350, "dns": 350, "mac": 350, "connect": 350}
