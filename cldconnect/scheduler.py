"""Recurring job primitives and a host-driven in-process scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol, runtime_checkable

LOG = logging.getLogger(__name__)

JobHandler = Callable[[], object]


@dataclass(frozen=True, slots=True)
class Recurrence:
    """Named interval a job can recur on."""

    name: str
    interval: timedelta
    display: str


@runtime_checkable
class Scheduler(Protocol):
    """Contract for the host's recurring task runner."""

    def add_recurrence(self, recurrence: Recurrence) -> None: ...

    def register_job(self, job: str, handler: JobHandler) -> None: ...

    def is_scheduled(self, job: str) -> bool: ...

    def schedule(self, job: str, recurrence: str, first_run: datetime) -> None: ...


@dataclass(slots=True)
class _ScheduledJob:
    recurrence: str
    next_run: datetime


class InProcessScheduler:
    """Scheduler that runs due jobs whenever the host calls ``run_pending``."""

    def __init__(self) -> None:
        self._recurrences: dict[str, Recurrence] = {}
        self._handlers: dict[str, JobHandler] = {}
        self._scheduled: dict[str, _ScheduledJob] = {}

    def add_recurrence(self, recurrence: Recurrence) -> None:
        self._recurrences[recurrence.name] = recurrence

    def add_recurrences(self, recurrences: Iterable[Recurrence]) -> None:
        for recurrence in recurrences:
            self.add_recurrence(recurrence)

    def register_job(self, job: str, handler: JobHandler) -> None:
        self._handlers[job] = handler

    def is_scheduled(self, job: str) -> bool:
        return job in self._scheduled

    def schedule(self, job: str, recurrence: str, first_run: datetime) -> None:
        if recurrence not in self._recurrences:
            raise ValueError(f"Recurrence '{recurrence}' is not registered")
        self._scheduled[job] = _ScheduledJob(recurrence=recurrence, next_run=first_run)

    def unschedule(self, job: str) -> None:
        self._scheduled.pop(job, None)

    def next_run(self, job: str) -> datetime | None:
        scheduled = self._scheduled.get(job)
        return scheduled.next_run if scheduled else None

    def run(self, job: str) -> object:
        """Invoke a job handler immediately."""

        handler = self._handlers.get(job)
        if handler is None:
            raise KeyError(f"No handler registered for job '{job}'")
        return handler()

    def run_pending(self, now: datetime) -> list[str]:
        """Run every job due at ``now`` once and re-arm it; returns the jobs run."""

        ran: list[str] = []
        for job, scheduled in tuple(self._scheduled.items()):
            if scheduled.next_run > now:
                continue
            if job not in self._handlers:
                LOG.debug("Skipping scheduled job without handler", extra={"job": job})
                continue
            interval = self._recurrences[scheduled.recurrence].interval
            scheduled.next_run = now + interval
            self.run(job)
            ran.append(job)
        return ran


__all__ = ["InProcessScheduler", "JobHandler", "Recurrence", "Scheduler"]
