"""Cron-style job registration on top of Celery beat."""
from typing import Callable, Dict, Protocol

from celery import Celery
from celery.schedules import ParseException, crontab

SCHEDULED_JOB_TASK = "workers.tasks.run_scheduled_job"


class Scheduler(Protocol):
    """Capability to run a callback on a cron schedule."""

    def register(self, name: str, cron_expression: str, callback: Callable[[], None]) -> None:
        ...


def parse_cron(expression: str) -> crontab:
    """Turn ``"m h dom mon dow"`` into a Celery ``crontab``."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Cron expression must have 5 fields, got {len(fields)}: '{expression}'")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    try:
        return crontab(
            minute=minute,
            hour=hour,
            day_of_month=day_of_month,
            month_of_year=month_of_year,
            day_of_week=day_of_week,
        )
    except ParseException as e:
        raise ValueError(f"Invalid cron expression '{expression}': {e}") from e


class CeleryBeatScheduler:
    """Scheduler that adds beat entries to a Celery app and dispatches by job name.

    Beat enqueues ``run_scheduled_job(name)``; the worker process holding the
    same registrations calls the matching callback.
    """

    def __init__(self, app: Celery, queue: str = "maintenance"):
        self.app = app
        self.queue = queue
        self._callbacks: Dict[str, Callable[[], None]] = {}

    def register(self, name: str, cron_expression: str, callback: Callable[[], None]) -> None:
        if name in self._callbacks:
            raise ValueError(f"Job '{name}' is already registered")
        schedule = parse_cron(cron_expression)
        beat_schedule = dict(self.app.conf.beat_schedule or {})
        beat_schedule[name] = {
            "task": SCHEDULED_JOB_TASK,
            "schedule": schedule,
            "args": (name,),
            "options": {"queue": self.queue},
        }
        self.app.conf.beat_schedule = beat_schedule
        self._callbacks[name] = callback

    def run(self, name: str) -> None:
        """Invoke the callback registered under ``name``."""
        self._callbacks[name]()
