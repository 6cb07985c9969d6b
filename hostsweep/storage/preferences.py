"""SQLite-backed preference and scan history storage for hostsweep."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
import sqlite3
from typing import Any

from hostsweep.scanner.errors import ConfigurationError
from hostsweep.scanner.models import ScanConfiguration

DB_PATH = Path.home() / ".hostsweep" / "hostsweep.db"
LAST_CONFIGURATION_KEY = "scan.last_configuration"


def _connect(db_path: str | Path | None = None) -> sqlite3.Connection:
    target = Path(db_path) if db_path else DB_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target)
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS preferences (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS scan_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            outcome TEXT NOT NULL,
            summary TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )
    return conn


def set_preference(key: str, value: Any, *, db_path: str | Path | None = None) -> None:
    payload = json.dumps(value, ensure_ascii=False)
    stamp = datetime.now(timezone.utc).isoformat()
    with _connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO preferences(key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (key, payload, stamp),
        )


def get_preference(key: str, default: Any = None, *, db_path: str | Path | None = None) -> Any:
    with _connect(db_path) as conn:
        row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
    if not row:
        return default
    try:
        return json.loads(str(row[0]))
    except json.JSONDecodeError:
        return default


def save_last_configuration(config: ScanConfiguration, *, db_path: str | Path | None = None) -> None:
    set_preference(LAST_CONFIGURATION_KEY, config.to_dict(), db_path=db_path)


def load_last_configuration(*, db_path: str | Path | None = None) -> ScanConfiguration | None:
    """Return the last stored configuration, or ``None`` if missing or no longer valid."""
    stored = get_preference(LAST_CONFIGURATION_KEY, db_path=db_path)
    if not isinstance(stored, dict):
        return None
    try:
        config = ScanConfiguration.from_dict(stored)
        config.validate()
    except (ConfigurationError, TypeError):
        return None
    return config


def record_scan_history(outcome: str, summary: dict[str, Any], *, db_path: str | Path | None = None) -> None:
    stamp = datetime.now(timezone.utc).isoformat()
    with _connect(db_path) as conn:
        conn.execute(
            "INSERT INTO scan_history(outcome, summary, created_at) VALUES (?, ?, ?)",
            (outcome, json.dumps(summary, ensure_ascii=False), stamp),
        )


def list_scan_history(limit: int = 25, *, db_path: str | Path | None = None) -> list[dict[str, Any]]:
    with _connect(db_path) as conn:
        rows = conn.execute(
            "SELECT outcome, summary, created_at FROM scan_history ORDER BY id DESC LIMIT ?",
            (max(1, int(limit)),),
        ).fetchall()
    history: list[dict[str, Any]] = []
    for outcome, summary, created_at in rows:
        try:
            decoded = json.loads(str(summary))
        except json.JSONDecodeError:
            decoded = {"raw": str(summary)}
        history.append({"outcome": outcome, "summary": decoded, "created_at": created_at})
    return history
