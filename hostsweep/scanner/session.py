"""Scan session: the start/stop state machine that owns results and phase."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import threading
import time
from typing import Callable

from .engine import BATCH_DELAY, BATCH_SIZE, run_batches
from .errors import AlreadyRunningError
from .events import EventDispatcher, EventSink, ScanComplete, ScanError
from .ip_utils import enumerate_addresses, is_local_or_private, number_to_text
from .models import HostProbeResult, ScanConfiguration
from .probes import ProbeCapabilities, SystemProbes

logger = logging.getLogger(__name__)


class ScanPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    COMPLETED = "completed"


class StopResult(str, Enum):
    ACCEPTED = "accepted"
    IDLE = "idle"


@dataclass(slots=True, frozen=True)
class ScanStatus:
    phase: ScanPhase
    is_scanning: bool
    scanned_count: int


@dataclass(slots=True, frozen=True)
class ScanSummary:
    """Snapshot of a finished scan, taken before the session can be restarted."""

    outcome: str
    config: ScanConfiguration
    results: tuple[HostProbeResult, ...]


@dataclass(slots=True)
class ScanJob:
    """Handle for a scan started by :meth:`ScanSession.start`."""

    _worker: threading.Thread
    _dispatcher: EventDispatcher
    _session: ScanSession

    def cancel(self) -> StopResult:
        """Ask the scan to stop at the next batch boundary."""
        return self._session.stop()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait until the scan and its event delivery finish; ``True`` when both are done."""
        deadline = None if timeout is None else time.monotonic() + timeout
        self._worker.join(timeout)
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        delivered = self._dispatcher.join(remaining)
        return delivered and not self._worker.is_alive()


class ScanSession:
    """Runs one scan at a time and streams its events to ``sink``.

    The session is the only writer of its phase and result map. Probes
    return values; the scheduler's control thread merges them in here.
    """

    def __init__(
        self,
        sink: EventSink,
        *,
        probes: ProbeCapabilities | None = None,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY,
        on_finished: Callable[[ScanSummary], None] | None = None,
    ) -> None:
        self._sink = sink
        self._probes = probes or SystemProbes()
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._on_finished = on_finished
        self._lock = threading.Lock()
        self._phase = ScanPhase.IDLE
        self._config: ScanConfiguration | None = None
        self._results: dict[int, HostProbeResult] = {}
        self._stop_event = threading.Event()
        self._job: ScanJob | None = None

    @property
    def phase(self) -> ScanPhase:
        with self._lock:
            return self._phase

    @property
    def config(self) -> ScanConfiguration | None:
        return self._config

    @property
    def job(self) -> ScanJob | None:
        return self._job

    def start(self, config: ScanConfiguration) -> ScanJob:
        """Validate ``config`` and begin scanning in the background.

        Raises :class:`ConfigurationError` for a malformed configuration and
        :class:`AlreadyRunningError` while a scan is running or stopping.
        """
        config.validate()
        with self._lock:
            if self._phase in (ScanPhase.RUNNING, ScanPhase.STOPPING):
                raise AlreadyRunningError(f"scan already in progress ({self._phase.value})")
            self._results.clear()
            self._config = config
            self._stop_event = threading.Event()
            self._phase = ScanPhase.RUNNING

        dispatcher = EventDispatcher(self._sink)
        worker = threading.Thread(
            target=self._run,
            args=(config, dispatcher, self._stop_event),
            daemon=True,
            name="scan-session-worker",
        )
        self._job = ScanJob(_worker=worker, _dispatcher=dispatcher, _session=self)
        dispatcher.start()
        worker.start()
        return self._job

    def stop(self) -> StopResult:
        """Signal a running scan to halt after its current batch."""
        with self._lock:
            if self._phase != ScanPhase.RUNNING:
                if self._phase == ScanPhase.STOPPING:
                    return StopResult.ACCEPTED
                return StopResult.IDLE
            self._phase = ScanPhase.STOPPING
            self._stop_event.set()
        logger.info("Scan stop requested")
        return StopResult.ACCEPTED

    def results(self) -> list[HostProbeResult]:
        """Reachable hosts found so far, in discovery order."""
        with self._lock:
            return list(self._results.values())

    def status(self) -> ScanStatus:
        with self._lock:
            return ScanStatus(
                phase=self._phase,
                is_scanning=self._phase in (ScanPhase.RUNNING, ScanPhase.STOPPING),
                scanned_count=len(self._results),
            )

    def _record(self, result: HostProbeResult) -> None:
        with self._lock:
            self._results[result.address] = result

    def _run(self, config: ScanConfiguration, dispatcher: EventDispatcher, stop_event: threading.Event) -> None:
        outcome = "completed"
        try:
            addresses = enumerate_addresses(config)
            logger.info(
                "Starting scan of %d addresses in batches of %d",
                len(addresses),
                self._batch_size,
            )
            if addresses and not (is_local_or_private(addresses[0]) and is_local_or_private(addresses[-1])):
                logger.warning(
                    "Scan target %s-%s is outside private address space",
                    number_to_text(addresses[0]),
                    number_to_text(addresses[-1]),
                )

            exhausted = run_batches(
                addresses,
                config,
                dispatcher.emit,
                probes=self._probes,
                stop_event=stop_event,
                record=self._record,
                batch_size=self._batch_size,
                batch_delay=self._batch_delay,
            )
            if exhausted and not stop_event.is_set():
                dispatcher.emit(ScanComplete())
                logger.info("Scan complete: %d hosts found", len(self._results))
            else:
                outcome = "stopped"
                logger.info("Scan stopped: %d hosts found", len(self._results))
        except Exception as exc:  # noqa: BLE001
            outcome = "error"
            logger.exception("Network scan failed")
            dispatcher.emit(ScanError(str(exc) or type(exc).__name__))
        finally:
            with self._lock:
                summary = ScanSummary(outcome=outcome, config=config, results=tuple(self._results.values()))
                self._phase = ScanPhase.COMPLETED
            dispatcher.close()

        if self._on_finished is not None:
            try:
                self._on_finished(summary)
            except Exception:  # noqa: BLE001
                logger.exception("Scan finish hook failed")
