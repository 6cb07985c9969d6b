import json

import pandas as pd
import pytest
from rich.console import Console

from hostsweep import main as cli
from hostsweep.export import ResultsLog
from hostsweep.scanner.errors import ConfigurationError
from hostsweep.scanner.events import HostFound, Progress, ScanComplete
from hostsweep.scanner.ip_utils import text_to_number
from hostsweep.scanner.models import HostProbeResult, ProgressEvent, ScanConfiguration
from hostsweep.storage import list_scan_history, save_last_configuration


def test_parse_ports_keeps_order_and_expands_ranges():
    assert cli.parse_ports("443, 22,8000-8002") == [443, 22, 8000, 8001, 8002]
    assert cli.parse_ports("") == []


def test_range_flags_build_range_configuration(tmp_path):
    args = cli.build_parser().parse_args(["--range", "10.0.0.1", "10.0.0.9", "--ports", "22", "--timeout", "300", "--db", str(tmp_path / "p.db")])
    config = cli.build_configuration(args)
    assert config == ScanConfiguration(start_address="10.0.0.1", end_address="10.0.0.9", extra_ports=(22,), per_host_timeout_ms=300)


def test_subnet_flags_build_subnet_configuration(tmp_path):
    args = cli.build_parser().parse_args(["--subnet", "192.168.1.0", "255.255.255.252", "--db", str(tmp_path / "p.db")])
    config = cli.build_configuration(args)
    assert config.mode == "subnet"
    assert config.per_host_timeout_ms == 1000


def test_range_and_subnet_are_exclusive():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--range", "10.0.0.1", "10.0.0.2", "--subnet", "10.0.0.0", "255.0.0.0"])


def test_detected_subnet_is_the_default(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "detect_local_subnet", lambda: ("192.168.5.10", "255.255.255.0"))
    args = cli.build_parser().parse_args(["--db", str(tmp_path / "p.db")])
    config = cli.build_configuration(args)
    assert (config.subnet_address, config.subnet_mask) == ("192.168.5.10", "255.255.255.0")


def test_stored_configuration_used_without_local_subnet(tmp_path, monkeypatch):
    db = tmp_path / "p.db"
    stored = ScanConfiguration(start_address="10.1.0.1", end_address="10.1.0.4", extra_ports=(80,), per_host_timeout_ms=700)
    save_last_configuration(stored, db_path=db)
    monkeypatch.setattr(cli, "detect_local_subnet", lambda: None)
    config = cli.build_configuration(cli.build_parser().parse_args(["--db", str(db)]))
    assert config == stored


def test_no_target_at_all_is_a_configuration_error(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "detect_local_subnet", lambda: None)
    with pytest.raises(ConfigurationError):
        cli.build_configuration(cli.build_parser().parse_args(["--db", str(tmp_path / "p.db")]))


def test_bad_port_list_is_a_configuration_error(tmp_path):
    args = cli.build_parser().parse_args(["--range", "10.0.0.1", "10.0.0.2", "--ports", "ssh", "--db", str(tmp_path / "p.db")])
    with pytest.raises(ConfigurationError):
        cli.build_configuration(args)


def test_console_sink_prints_and_logs(tmp_path):
    console = Console(record=True, width=200)
    log_path = tmp_path / "found.jsonl"
    result = HostProbeResult(address=text_to_number("10.0.0.3"), is_reachable=True, hostname="tv.lan", open_ports=(8008,))

    with ResultsLog(log_path) as log:
        sink = cli.ConsoleSink(console, log)
        sink(HostFound(result))
        sink(Progress(ProgressEvent(completed_count=3, total_count=3, last_address=result.address)))
        sink(ScanComplete())

    text = console.export_text()
    assert "10.0.0.3" in text
    assert "8008" in text
    assert "3/3 scanned" in text
    assert "Scan complete" in text
    assert log_path.read_text(encoding="utf-8").count("\n") == 1


def test_main_rejects_invalid_configuration(tmp_path):
    assert cli.main(["--range", "10.0.0.1", "10.0.0.x", "--db", str(tmp_path / "p.db")]) == 2


def test_main_scans_logs_records_and_exports(tmp_path, fake_probes, capsys):
    export_path = tmp_path / "hosts.csv"
    log_path = tmp_path / "hosts.jsonl"
    db = tmp_path / "p.db"
    probes = fake_probes(reachable={"10.0.0.2"}, open_ports={"10.0.0.2": {22}}, hostnames={"10.0.0.2": "nas.lan"})

    code = cli.main(
        [
            "--range", "10.0.0.1", "10.0.0.3",
            "--ports", "22",
            "--timeout", "100",
            "--export", str(export_path),
            "--results-log", str(log_path),
            "--db", str(db),
        ],
        probes=probes,
    )

    assert code == 0
    output = capsys.readouterr().out
    assert "Discovered hosts" in output
    assert "nas.lan" in output
    assert "Exported 1 hosts" in output

    frame = pd.read_csv(export_path)
    assert list(frame["ip"]) == ["10.0.0.2"]
    assert str(frame["open_ports"][0]) == "22"

    lines = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert [line["ip"] for line in lines] == ["10.0.0.2"]

    history = list_scan_history(db_path=db)
    assert history[0]["outcome"] == "completed"
    assert [host["ip"] for host in history[0]["summary"]["hosts"]] == ["10.0.0.2"]
    assert history[0]["summary"]["config"]["per_host_timeout_ms"] == 100


class _InterruptedJob:
    def __init__(self):
        self.waits = 0

    def wait(self, timeout=None):
        self.waits += 1
        if self.waits == 1:
            raise KeyboardInterrupt
        return True


class _Session:
    def __init__(self):
        self.job = _InterruptedJob()
        self.stopped = 0

    def start(self, config):
        return self.job

    def stop(self):
        self.stopped += 1


def test_ctrl_c_stops_the_running_scan():
    console = Console(record=True)
    session = _Session()
    cli._run_once(session, ScanConfiguration(start_address="10.0.0.1", end_address="10.0.0.3"), console)
    assert session.stopped == 1
    assert session.job.waits == 2
    assert "Stopping scan" in console.export_text()
