"""JSON-lines log of the hosts a scan discovers."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import json
from pathlib import Path
import threading
from typing import IO, Iterator

from hostsweep.scanner.models import HostProbeResult


@contextmanager
def _advisory_file_lock(handle: IO[str]) -> Iterator[None]:
    """Hold a best-effort exclusive lock on an open file while writing."""
    try:
        import fcntl  # type: ignore
    except ModuleNotFoundError:
        fcntl = None  # type: ignore[assignment]
    if fcntl is None:
        # No POSIX locks (Windows): process-level lock only.
        yield
        return

    fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
    try:
        yield
    finally:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class ResultsLog:
    """Append-only host log, opened once and written from the event consumer.

    Each line is one :class:`HostProbeResult` plus the time it was logged.
    """

    def __init__(self, path: str | Path = "hostsweep_results.jsonl") -> None:
        self.path = Path(path)
        self._handle: IO[str] | None = None
        self._lock = threading.Lock()
        self.written = 0

    def open(self) -> ResultsLog:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        return self

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> ResultsLog:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write(self, result: HostProbeResult) -> None:
        payload = result.to_dict()
        payload["logged_at"] = datetime.now(timezone.utc).isoformat()
        line = json.dumps(payload, ensure_ascii=False) + "\n"
        with self._lock:
            if self._handle is None:
                raise ValueError(f"results log {self.path} is not open")
            with _advisory_file_lock(self._handle):
                self._handle.write(line)
                self._handle.flush()
            self.written += 1

