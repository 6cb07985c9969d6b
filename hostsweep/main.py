"""Command-line front end for hostsweep."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
import threading
from typing import Callable, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hostsweep.export import ResultsLog, export_results
from hostsweep.logging_config import setup_logging
from hostsweep.scanner import (
    ConfigurationError,
    HostFound,
    Progress,
    ScanComplete,
    ScanConfiguration,
    ScanError,
    ScanEvent,
    ScanSession,
    ScanSummary,
    detect_local_subnet,
)
from hostsweep.scanner.models import DEFAULT_TIMEOUT_MS
from hostsweep.scanner.probes import ProbeCapabilities
from hostsweep.storage import load_last_configuration, record_scan_history, save_last_configuration

logger = logging.getLogger("hostsweep")


def parse_ports(raw: str) -> list[int]:
    """Parse ``22,80,8000-8002`` into a port list, keeping the given order."""
    ports: list[int] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if "-" in chunk:
            low, high = (int(part) for part in chunk.split("-", 1))
            ports.extend(range(low, high + 1))
        else:
            ports.append(int(chunk))
    return ports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hostsweep", description="Discover live hosts on a local IPv4 network.")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--range", nargs=2, metavar=("START", "END"), help="inclusive address range")
    target.add_argument("--subnet", nargs=2, metavar=("ADDRESS", "MASK"), help="subnet address and dotted mask")
    parser.add_argument("--ports", default="", help="extra TCP ports to test, e.g. 22,80,8000-8010")
    parser.add_argument("--timeout", type=int, default=None, help=f"per-host timeout in ms (default {DEFAULT_TIMEOUT_MS})")
    parser.add_argument("--results-log", type=Path, help="append found hosts to this JSON-lines file")
    parser.add_argument("--export", type=Path, help="write found hosts to a .csv or .xlsx file")
    parser.add_argument("--every", type=float, metavar="MINUTES", help="repeat the scan every MINUTES")
    parser.add_argument("--log-file", help="also write logs to this file")
    parser.add_argument("--db", type=Path, help="preference database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def build_configuration(args: argparse.Namespace) -> ScanConfiguration:
    """Resolve the scan target from flags, then the local subnet, then the stored configuration."""
    try:
        ports = tuple(parse_ports(args.ports))
    except ValueError as exc:
        raise ConfigurationError(f"invalid port list: {args.ports!r}") from exc

    stored = load_last_configuration(db_path=args.db)
    timeout = args.timeout if args.timeout is not None else (stored.per_host_timeout_ms if stored else DEFAULT_TIMEOUT_MS)
    if not ports and stored and not (args.range or args.subnet):
        ports = stored.extra_ports

    if args.range:
        return ScanConfiguration(start_address=args.range[0], end_address=args.range[1], extra_ports=ports, per_host_timeout_ms=timeout)
    if args.subnet:
        return ScanConfiguration(subnet_address=args.subnet[0], subnet_mask=args.subnet[1], extra_ports=ports, per_host_timeout_ms=timeout)

    local = detect_local_subnet()
    if local is not None:
        return ScanConfiguration(subnet_address=local[0], subnet_mask=local[1], extra_ports=ports, per_host_timeout_ms=timeout)
    if stored is not None:
        return stored
    raise ConfigurationError("no target given and no local IPv4 subnet detected")


class ConsoleSink:
    """Print scan events and optionally mirror found hosts into a JSON-lines log."""

    def __init__(self, console: Console, results_log: ResultsLog | None = None) -> None:
        self.console = console
        self.results_log = results_log

    def __call__(self, event: ScanEvent) -> None:
        if isinstance(event, HostFound):
            result = event.result
            ports = ", ".join(str(port) for port in result.open_ports) or "-"
            self.console.print(
                f"[green]up[/green] {result.ip:<15} {escape(result.hostname or ''):<32} "
                f"{result.mac_address or '-':<17} ports: {ports}"
            )
            if self.results_log is not None:
                self.results_log.write(result)
        elif isinstance(event, Progress):
            progress = event.progress
            self.console.print(
                f"[dim]{progress.completed_count}/{progress.total_count} scanned (last {progress.last_ip})[/dim]"
            )
        elif isinstance(event, ScanComplete):
            self.console.print("[bold]Scan complete[/bold]")
        elif isinstance(event, ScanError):
            self.console.print(f"[red]Scan failed:[/red] {event.reason}")


def render_summary(console: Console, session: ScanSession) -> None:
    table = Table(title="Discovered hosts")
    for column in ("IP", "Hostname", "MAC", "RTT (ms)", "Open ports"):
        table.add_column(column)
    for result in session.results():
        table.add_row(
            result.ip,
            escape(result.hostname or ""),
            result.mac_address or "",
            "" if result.round_trip_ms is None else f"{result.round_trip_ms:.1f}",
            ", ".join(str(port) for port in result.open_ports),
        )
    console.print(table)


def _history_hook(db_path: Path | None) -> Callable[[ScanSummary], None]:
    def record(summary: ScanSummary) -> None:
        record_scan_history(
            summary.outcome,
            {
                "config": summary.config.to_dict(),
                "hosts": [result.to_dict() for result in summary.results],
            },
            db_path=db_path,
        )

    return record


def _run_once(session: ScanSession, config: ScanConfiguration, console: Console) -> None:
    job = session.start(config)
    try:
        while not job.wait(timeout=0.2):
            pass
    except KeyboardInterrupt:
        console.print("[yellow]Stopping scan...[/yellow]")
        session.stop()
        job.wait()


def _run_recurring(session: ScanSession, config: ScanConfiguration, minutes: float) -> None:
    from hostsweep.scheduler import build_scheduler, schedule_recurring_scan

    scheduler = build_scheduler()
    schedule_recurring_scan(scheduler, session, config, minutes=minutes)
    scheduler.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        session.stop()
        if session.job is not None:
            session.job.wait()
    finally:
        scheduler.shutdown(wait=False)


def main(argv: Sequence[str] | None = None, *, probes: ProbeCapabilities | None = None) -> int:
    """Application entrypoint; ``probes`` replaces the system probe capabilities."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)
    console = Console()

    try:
        config = build_configuration(args)
        config.validate()
    except ConfigurationError as exc:
        logger.error("Invalid scan configuration: %s", exc)
        return 2
    save_last_configuration(config, db_path=args.db)

    results_log = ResultsLog(args.results_log).open() if args.results_log else None
    try:
        sink = ConsoleSink(console, results_log)
        session = ScanSession(sink, probes=probes, on_finished=_history_hook(args.db))

        if args.every:
            _run_recurring(session, config, args.every)
        else:
            _run_once(session, config, console)
    finally:
        if results_log is not None:
            results_log.close()
            console.print(f"Logged {results_log.written} hosts to {results_log.path}")

    render_summary(console, session)
    if args.export:
        path = export_results(session.results(), args.export)
        console.print(f"Exported {len(session.results())} hosts to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
