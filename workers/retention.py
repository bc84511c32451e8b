"""Scheduled removal of statistics older than the retention window."""
import asyncio
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.typing import FilteringBoundLogger

from api.features.stats.repository import StatRepository
from infra.resources import DatabaseResource
from workers.scheduler import Scheduler

DEFAULT_RETENTION = timedelta(hours=24)
# minute 1 of every hour
DEFAULT_CRON = "1 */1 * * *"


class SweeperState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RetentionSweeper:
    """Delete stat rows older than ``retention`` on every scheduler tick.

    A failed tick is only logged; the next tick evaluates the same age
    predicate and removes whatever is left.
    """

    JOB_NAME = "remove_old_stat_data"

    def __init__(
        self,
        database: DatabaseResource,
        scheduler: Scheduler,
        logger: Optional[FilteringBoundLogger] = None,
        retention: timedelta = DEFAULT_RETENTION,
        cron_expression: str = DEFAULT_CRON,
        repository_factory: Callable[[AsyncSession], StatRepository] = StatRepository,
    ):
        self.database = database
        self.retention = retention
        self.repository_factory = repository_factory
        self.logger = (logger or structlog.get_logger()).bind(module="workers.retention")
        self.state = SweeperState.IDLE
        self._lock = threading.Lock()

        scheduler.register(self.JOB_NAME, cron_expression, self.on_tick)
        self.logger.info("retention.cron_registered", cron_id=self.JOB_NAME, cron=cron_expression)

    def on_tick(self) -> None:
        """Scheduler entry point; runs one sweep to completion."""
        if not self._lock.acquire(blocking=False):
            self.logger.warning("retention.sweep_skipped", reason="previous tick still running")
            return
        self.state = SweeperState.RUNNING
        self.logger.info("retention.sweep_started")
        try:
            deleted = asyncio.run(self.run_once())
        except Exception as e:
            self.logger.error("retention.sweep_failed", error=str(e))
        else:
            self.logger.info("retention.sweep_finished", deleted=deleted)
        finally:
            self.state = SweeperState.IDLE
            self._lock.release()

    async def run_once(self, now: Optional[datetime] = None) -> int:
        """Delete stats created before ``now - retention``; returns rows deleted."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - self.retention
        await self.database.init()
        try:
            session = self.database.get_session()
            try:
                return await self.repository_factory(session).delete_older_than(cutoff)
            finally:
                await session.close()
        finally:
            await self.database.shutdown()
