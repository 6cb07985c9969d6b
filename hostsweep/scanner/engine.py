"""Batched scan scheduler: bounded concurrent probing with ordered progress."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
import threading
from typing import Callable, Iterator, Sequence

from .events import HostFound, Progress, ScanEvent
from .host_probe import probe_host
from .models import HostProbeResult, ProgressEvent, ScanConfiguration
from .probes import ProbeCapabilities

logger = logging.getLogger(__name__)

BATCH_SIZE = 10
BATCH_DELAY = 0.05


def iter_batches(addresses: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    """Yield consecutive slices of ``addresses`` holding at most ``size`` items."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for offset in range(0, len(addresses), size):
        yield addresses[offset : offset + size]


def run_batches(
    addresses: Sequence[int],
    config: ScanConfiguration,
    emit: Callable[[ScanEvent], None],
    *,
    probes: ProbeCapabilities,
    stop_event: threading.Event,
    record: Callable[[HostProbeResult], None] | None = None,
    batch_size: int = BATCH_SIZE,
    batch_delay: float = BATCH_DELAY,
) -> bool:
    """Probe ``addresses`` batch by batch.

    Reachable hosts are passed to ``record`` and emitted as :class:`HostFound`
    in completion order; one :class:`Progress` follows each batch. The stop
    event is honoured before each batch starts.

    Returns ``True`` when every batch ran and ``False`` when stopped early.
    """
    total = len(addresses)
    completed = 0

    with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="scan-probe") as pool:
        for batch in iter_batches(addresses, batch_size):
            if stop_event.is_set():
                logger.info("Scan stopped after %d of %d addresses", completed, total)
                return False

            futures = [pool.submit(probe_host, address, config, probes) for address in batch]
            for future in as_completed(futures):
                result = future.result()
                if not result.is_reachable:
                    continue
                if record is not None:
                    record(result)
                emit(HostFound(result))

            completed += len(batch)
            emit(Progress(ProgressEvent(completed_count=completed, total_count=total, last_address=batch[-1])))

            if completed < total and batch_delay > 0:
                stop_event.wait(batch_delay)

    return True
