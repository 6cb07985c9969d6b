import pytest

from hostsweep.scanner.errors import AlreadyRunningError
from hostsweep.scanner.models import ScanConfiguration
from hostsweep.scheduler import jobs


@pytest.fixture(autouse=True)
def _clean_events():
    jobs.clear_schedule_events()
    yield
    jobs.clear_schedule_events()


class _Session:
    def __init__(self, busy=False):
        self.busy = busy
        self.started = []

    def start(self, config):
        if self.busy:
            raise AlreadyRunningError("scan already in progress")
        self.started.append(config)


def _config():
    return ScanConfiguration(start_address="10.0.0.1", end_address="10.0.0.5")


def test_trigger_starts_idle_session():
    session = _Session()
    assert jobs.trigger_scan(session, _config(), "job-1") is True
    assert session.started == [_config()]
    assert [event["action"] for event in jobs.get_schedule_events(job_id="job-1")] == ["started"]


def test_trigger_skips_busy_session():
    session = _Session(busy=True)
    assert jobs.trigger_scan(session, _config(), "job-2") is False
    events = jobs.get_schedule_events(job_id="job-2")
    assert [event["action"] for event in events] == ["skipped"]
    assert events[0]["metadata"]["reason"] == "already-running"


def test_schedule_recurring_scan_registers_interval_job():
    scheduler = jobs.build_scheduler()
    job = jobs.schedule_recurring_scan(scheduler, _Session(), _config(), minutes=5, job_id="lan")
    assert job.id == "lan"
    assert [registered.id for registered in scheduler.get_jobs()] == ["lan"]
    assert jobs.get_schedule_events(job_id="lan")[0]["metadata"] == {"minutes": 5}


def test_schedule_recurring_scan_rejects_bad_interval():
    with pytest.raises(ValueError):
        jobs.schedule_recurring_scan(jobs.build_scheduler(), _Session(), _config(), minutes=0)


def test_schedule_event_records_only_known_fields():
    event = jobs.log_schedule_event(action="scheduled", job_id="lan", metadata={"minutes": 5})
    assert set(event) == {"timestamp", "action", "job_id", "metadata"}
    assert jobs.get_schedule_events(job_id="lan") == [event]
