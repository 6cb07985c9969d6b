"""Recurring scan jobs and their schedule event log."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from threading import Lock
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.background import BackgroundScheduler

from hostsweep.scanner.errors import AlreadyRunningError, ConfigurationError
from hostsweep.scanner.models import ScanConfiguration

if TYPE_CHECKING:
    from apscheduler.job import Job

    from hostsweep.scanner.session import ScanSession

logger = logging.getLogger(__name__)

_JOB_EVENTS: list[dict[str, Any]] = []
_JOB_EVENTS_LOCK = Lock()


def build_scheduler() -> BackgroundScheduler:
    """Create and return a background scheduler instance."""
    return BackgroundScheduler()


def log_schedule_event(
    *,
    action: str,
    job_id: str,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Store scheduler event metadata for later inspection."""
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "job_id": job_id,
        "metadata": dict(metadata or {}),
    }
    with _JOB_EVENTS_LOCK:
        _JOB_EVENTS.append(event)
    return event


def get_schedule_events(*, job_id: str | None = None) -> list[dict[str, Any]]:
    """Return a snapshot of recorded scheduler metadata events."""
    with _JOB_EVENTS_LOCK:
        items = list(_JOB_EVENTS)
    if job_id:
        return [event for event in items if str(event.get("job_id")) == job_id]
    return items


def clear_schedule_events() -> None:
    with _JOB_EVENTS_LOCK:
        _JOB_EVENTS.clear()


def trigger_scan(session: ScanSession, config: ScanConfiguration, job_id: str) -> bool:
    """Start a scheduled scan; a busy session skips this run rather than queuing it."""
    try:
        session.start(config)
    except AlreadyRunningError:
        logger.info("Scheduled scan %s skipped: previous scan still running", job_id)
        log_schedule_event(action="skipped", job_id=job_id, metadata={"reason": "already-running"})
        return False
    except ConfigurationError as exc:
        logger.error("Scheduled scan %s has an invalid configuration: %s", job_id, exc)
        log_schedule_event(action="rejected", job_id=job_id, metadata={"reason": str(exc)})
        return False
    log_schedule_event(action="started", job_id=job_id, metadata=config.to_dict())
    return True


def schedule_recurring_scan(
    scheduler: BackgroundScheduler,
    session: ScanSession,
    config: ScanConfiguration,
    *,
    minutes: float,
    job_id: str = "hostsweep-recurring",
    run_now: bool = True,
) -> Job:
    """Register an interval job that rescans ``config`` every ``minutes``."""
    if minutes <= 0:
        raise ValueError("minutes must be greater than zero")
    config.validate()
    options: dict[str, Any] = {}
    if run_now:
        options["next_run_time"] = datetime.now(timezone.utc)
    job = scheduler.add_job(
        trigger_scan,
        "interval",
        minutes=minutes,
        args=(session, config, job_id),
        id=job_id,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **options,
    )
    log_schedule_event(action="scheduled", job_id=job_id, metadata={"minutes": minutes})
    return job
