"""Spreadsheet exports of a scan session's discovered hosts."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from hostsweep.scanner.models import HostProbeResult

COLUMNS = ["ip", "hostname", "mac_address", "round_trip_ms", "open_ports"]


def results_to_rows(results: Iterable[HostProbeResult]) -> list[dict[str, Any]]:
    """Flatten host results into spreadsheet rows, ports joined as text."""
    rows: list[dict[str, Any]] = []
    for result in results:
        row = result.to_dict()
        row["open_ports"] = ",".join(str(port) for port in result.open_ports)
        rows.append({column: row[column] for column in COLUMNS})
    return rows


def results_to_frame(results: Iterable[HostProbeResult]) -> pd.DataFrame:
    return pd.DataFrame(results_to_rows(results), columns=COLUMNS)


def export_results_to_csv(results: Iterable[HostProbeResult], output_path: str | Path) -> Path:
    """Export discovered hosts to CSV."""
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    results_to_frame(results).to_csv(target, index=False)
    return target


def export_results_to_xlsx(results: Iterable[HostProbeResult], output_path: str | Path) -> Path:
    """Export discovered hosts to XLSX using pandas DataFrame.to_excel."""
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(target) as writer:
        results_to_frame(results).to_excel(writer, sheet_name="hosts", index=False)
    return target


def export_results(results: Iterable[HostProbeResult], output_path: str | Path) -> Path:
    """Pick the writer from the file suffix (``.xlsx`` or CSV otherwise)."""
    if Path(output_path).suffix.lower() == ".xlsx":
        return export_results_to_xlsx(results, output_path)
    return export_results_to_csv(results, output_path)
