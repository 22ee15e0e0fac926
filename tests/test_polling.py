import logging

import pytest

from qualibot_action.application.polling import JobPoller, unwrap_job_payload
from qualibot_action.domain.models import JobHandle
from tests.stubs import FakeClock, ScriptedService, transient_error

HANDLE = JobHandle(id="t1", dashboard_url="https://app.example/view/t1")


def _poller(service: ScriptedService, clock: FakeClock, *, timeout: float = 1800, interval: float = 30) -> JobPoller:
    return JobPoller(
        service=service,
        project_id="proj-1",
        timeout_seconds=timeout,
        poll_interval_seconds=interval,
        sleep=clock.sleep,
        clock=clock,
    )


def test_unwrap_accepts_nested_and_flat_payloads():
    flat = {"status": "running"}
    nested = {"prTest": {"status": "completed"}}

    assert unwrap_job_payload(flat) is flat
    assert unwrap_job_payload(nested) == {"status": "completed"}
    assert unwrap_job_payload({"prTest": None, "status": "failed"}) == {"prTest": None, "status": "failed"}


def test_running_running_completed_stops_on_third_read():
    clock = FakeClock()
    service = ScriptedService(
        [
            {"status": "running"},
            {"status": "running"},
            {"status": "completed", "result": "passed", "issuesSummary": {"total": 1, "critical": 0}},
        ],
        clock=clock,
    )

    outcome = _poller(service, clock, interval=30).wait(HANDLE)

    assert outcome.status == "completed"
    assert outcome.result == "passed"
    assert outcome.total_issues == 1
    assert outcome.requests_made == 3
    assert [read["at"] for read in service.reads] == [30, 60, 90]
    assert clock.sleeps == [30, 30, 30]
    assert all(read["job_id"] == "t1" and read["project_id"] == "proj-1" for read in service.reads)


def test_never_terminal_times_out_without_reading_after_deadline():
    clock = FakeClock(overshoot=0.005)
    service = ScriptedService([{"status": "running"}], clock=clock)

    outcome = _poller(service, clock, timeout=60, interval=30).wait(HANDLE)

    assert outcome.status == "timeout"
    assert outcome.job is None
    assert outcome.result == ""
    assert [read["at"] for read in service.reads] == pytest.approx([30.005, 60.01])
    # The deadline was seen before the third sleep: no sleep and no read after it.
    assert len(clock.sleeps) == 2


def test_read_follows_every_sleep_even_when_waking_late():
    clock = FakeClock(overshoot=0.005)
    service = ScriptedService(
        [{"status": "running"}, {"status": "completed", "result": "passed"}],
        clock=clock,
    )

    outcome = _poller(service, clock, timeout=60, interval=30).wait(HANDLE)

    assert outcome.status == "completed"
    assert outcome.result == "passed"
    assert outcome.requests_made == 2


def test_loop_overruns_deadline_by_at_most_one_interval():
    clock = FakeClock()
    service = ScriptedService([{"status": "running"}], clock=clock)

    outcome = _poller(service, clock, timeout=100, interval=30).wait(HANDLE)

    assert outcome.status == "timeout"
    assert [read["at"] for read in service.reads] == [30, 60, 90, 120]
    assert all(read["at"] - 30 < 100 for read in service.reads)


@pytest.mark.parametrize("overshoot", [0.0, 0.005, 0.5])
def test_timeout_60_interval_30_makes_two_requests(overshoot):
    clock = FakeClock(overshoot=overshoot)
    service = ScriptedService([{"status": "queued"}], clock=clock)

    outcome = _poller(service, clock, timeout=60, interval=30).wait(HANDLE)

    assert outcome.status == "timeout"
    assert outcome.requests_made == 2
    assert len(service.reads) == 2


def test_transient_error_does_not_abort(caplog):
    clock = FakeClock()
    service = ScriptedService(
        [transient_error(502), {"prTest": {"status": "completed", "result": "passed"}}],
        clock=clock,
    )

    with caplog.at_level(logging.WARNING, logger="qualibot_action"):
        outcome = _poller(service, clock).wait(HANDLE)

    assert outcome.status == "completed"
    assert outcome.requests_made == 2
    assert any("Status check failed (502)" in record.getMessage() for record in caplog.records)


def test_failed_status_defaults_missing_fields():
    clock = FakeClock()
    service = ScriptedService([{"status": "failed", "error": "browser crashed"}], clock=clock)

    outcome = _poller(service, clock).wait(HANDLE)

    assert outcome.status == "failed"
    assert outcome.result == "unknown"
    assert outcome.total_issues == 0
    assert outcome.critical_issues == 0
    assert outcome.error == "browser crashed"


def test_null_counts_and_lists_read_as_defaults():
    clock = FakeClock()
    service = ScriptedService(
        [
            {
                "status": "completed",
                "result": None,
                "issuesSummary": {"total": None, "critical": 3},
                "testResults": None,
                "interactionResults": None,
            }
        ],
        clock=clock,
    )

    outcome = _poller(service, clock).wait(HANDLE)

    assert outcome.result == "unknown"
    assert outcome.total_issues == 0
    assert outcome.critical_issues == 3
    assert outcome.job is not None
    assert outcome.job.testResults == []
    assert outcome.job.interactionResults == []


def test_malformed_sub_report_is_dropped_not_fatal():
    clock = FakeClock()
    service = ScriptedService(
        [
            {
                "status": "completed",
                "result": "passed",
                "discoveryResults": "not-a-list",
                "affectedComponents": [{"name": "Header", "type": "layout"}],
            }
        ],
        clock=clock,
    )

    outcome = _poller(service, clock).wait(HANDLE)

    assert outcome.status == "completed"
    assert outcome.job.discoveryResults == []
    assert [c.name for c in outcome.job.affectedComponents] == ["Header"]


def test_zero_timeout_never_reads():
    clock = FakeClock()
    service = ScriptedService([{"status": "completed"}], clock=clock)

    outcome = _poller(service, clock, timeout=0).wait(HANDLE)

    assert outcome.status == "timeout"
    assert service.reads == []
