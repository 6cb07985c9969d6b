"""Scanner package: address enumeration, host probes, batch scheduler and scan session."""

from .engine import BATCH_DELAY, BATCH_SIZE, run_batches
from .errors import AlreadyRunningError, ConfigurationError, HostSweepError
from .events import HostFound, Progress, ScanComplete, ScanError, ScanEvent
from .host_probe import probe_host
from .ip_utils import detect_local_subnet, enumerate_addresses, number_to_text, text_to_number
from .models import HostProbeResult, ProgressEvent, ScanConfiguration
from .probes import ProbeCapabilities, Reachability, SystemProbes
from .session import ScanJob, ScanPhase, ScanSession, ScanStatus, ScanSummary, StopResult

__all__ = [
    "BATCH_DELAY",
    "BATCH_SIZE",
    "AlreadyRunningError",
    "ConfigurationError",
    "HostSweepError",
    "HostFound",
    "Progress",
    "ScanComplete",
    "ScanError",
    "ScanEvent",
    "HostProbeResult",
    "ProgressEvent",
    "ScanConfiguration",
    "ProbeCapabilities",
    "Reachability",
    "SystemProbes",
    "ScanJob",
    "ScanPhase",
    "ScanSession",
    "ScanStatus",
    "ScanSummary",
    "StopResult",
    "detect_local_subnet",
    "enumerate_addresses",
    "number_to_text",
    "probe_host",
    "run_batches",
    "text_to_number",
]
