"""Events streamed to a scan sink and the queue that delivers them."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
import threading
from typing import Callable, Union

from .models import HostProbeResult, ProgressEvent

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class HostFound:
    result: HostProbeResult


@dataclass(slots=True, frozen=True)
class Progress:
    progress: ProgressEvent


@dataclass(slots=True, frozen=True)
class ScanComplete:
    pass


@dataclass(slots=True, frozen=True)
class ScanError:
    reason: str


ScanEvent = Union[HostFound, Progress, ScanComplete, ScanError]
EventSink = Callable[[ScanEvent], None]


class EventDispatcher:
    """Deliver events to a sink from a single consumer thread, in emit order."""

    def __init__(self, sink: EventSink, *, name: str = "scan-event-consumer") -> None:
        self._sink = sink
        self._queue: queue.Queue[ScanEvent | None] = queue.Queue()
        self._thread = threading.Thread(target=self._consume, daemon=True, name=name)

    def start(self) -> None:
        self._thread.start()

    def emit(self, event: ScanEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        """Flush remaining events and let the consumer exit."""
        self._queue.put(None)

    def join(self, timeout: float | None = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _consume(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    break
                self._sink(event)
            except Exception:  # noqa: BLE001
                logger.exception("Scan event sink failed on %s", type(event).__name__)
            finally:
                self._queue.task_done()
