"""Unit tests for the in-process scheduler."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cldconnect.scheduler import InProcessScheduler, Recurrence, Scheduler

EVERY_MINUTE = Recurrence(name="every_minute", interval=timedelta(minutes=1), display="Every Minute")
START = datetime(2026, 10, 19, tzinfo=timezone.utc)


def test_schedule_requires_known_recurrence() -> None:
    scheduler = InProcessScheduler()

    with pytest.raises(ValueError):
        scheduler.schedule("job", "every_minute", START)


def test_run_pending_runs_due_jobs_and_rearms() -> None:
    executed: list[str] = []
    scheduler = InProcessScheduler()
    scheduler.add_recurrence(EVERY_MINUTE)
    scheduler.register_job("job", lambda: executed.append("ok"))
    scheduler.schedule("job", "every_minute", START)

    assert scheduler.run_pending(START) == ["job"]
    assert scheduler.run_pending(START + timedelta(seconds=30)) == []
    assert scheduler.run_pending(START + timedelta(minutes=1)) == ["job"]
    assert executed == ["ok", "ok"]


def test_run_pending_skips_jobs_without_handler() -> None:
    scheduler = InProcessScheduler()
    scheduler.add_recurrences([EVERY_MINUTE])
    scheduler.schedule("orphan", "every_minute", START)

    assert scheduler.run_pending(START) == []


def test_run_unknown_job_raises() -> None:
    with pytest.raises(KeyError):
        InProcessScheduler().run("missing")


def test_unschedule_removes_job() -> None:
    scheduler = InProcessScheduler()
    scheduler.add_recurrence(EVERY_MINUTE)
    scheduler.schedule("job", "every_minute", START)

    scheduler.unschedule("job")

    assert scheduler.is_scheduled("job") is False
    assert scheduler.next_run("job") is None
    assert isinstance(scheduler, Scheduler)
