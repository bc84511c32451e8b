"""
Tests for the statistics retention sweeper.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from api.features.stats.entities.stat import StatPage
from api.features.stats.repository import StatRepository
from api.shared.entities.base import BaseEntity
from infra.resources import DatabaseResource
from workers.retention import RetentionSweeper, SweeperState


@pytest.fixture
def database(database_url) -> DatabaseResource:
    """Database resource over a SQLite file with the schema created."""

    async def _create_schema():
        engine = create_async_engine(database_url)
        async with engine.begin() as conn:
            await conn.run_sync(BaseEntity.metadata.create_all)
        await engine.dispose()

    asyncio.run(_create_schema())
    return DatabaseResource(database_url)


def _seed(database, created_ats):
    async def _insert():
        await database.init()
        session = database.get_session()
        try:
            session.add_all(
                [
                    StatPage(id=f"stat-{i}", kb_id="kb-1", created_at=created_at)
                    for i, created_at in enumerate(created_ats)
                ]
            )
            await session.commit()
        finally:
            await session.close()
            await database.shutdown()

    asyncio.run(_insert())


def _remaining_ids(database):
    async def _select():
        await database.init()
        session = database.get_session()
        try:
            result = await session.execute(select(StatPage.id).order_by(StatPage.id))
            return list(result.scalars().all())
        finally:
            await session.close()
            await database.shutdown()

    return asyncio.run(_select())


@pytest.fixture
def scheduler() -> MagicMock:
    return MagicMock()


@pytest.fixture
def sweeper(database, scheduler, logger) -> RetentionSweeper:
    return RetentionSweeper(
        database,
        scheduler,
        logger=logger,
        retention=timedelta(hours=24),
        cron_expression="1 */1 * * *",
    )


class TestRetentionSweeper:
    """Tests for scheduled deletion of old statistics."""

    def test_registers_cron_job(self, sweeper, scheduler):
        scheduler.register.assert_called_once_with(
            RetentionSweeper.JOB_NAME, "1 */1 * * *", sweeper.on_tick
        )
        assert sweeper.state is SweeperState.IDLE

    def test_tick_deletes_only_expired_rows(self, sweeper, database, logger):
        now = datetime.now(timezone.utc)
        _seed(database, [now - timedelta(hours=25), now - timedelta(hours=1)])

        sweeper.on_tick()

        assert _remaining_ids(database) == ["stat-1"]
        assert sweeper.state is SweeperState.IDLE
        logger.info.assert_any_call("retention.sweep_finished", deleted=1)

    def test_row_at_cutoff_is_kept(self, sweeper, database):
        now = datetime(2025, 10, 2, 12, 0, tzinfo=timezone.utc)
        _seed(
            database,
            [
                now - timedelta(hours=24),
                now - timedelta(hours=24, seconds=1),
            ],
        )

        deleted = asyncio.run(sweeper.run_once(now=now))

        assert deleted == 1
        assert _remaining_ids(database) == ["stat-0"]

    def test_empty_table(self, sweeper):
        assert asyncio.run(sweeper.run_once()) == 0

    def test_failed_tick_is_logged_and_retried(self, database, scheduler, logger):
        failing = MagicMock()
        failing.return_value.delete_older_than.side_effect = RuntimeError("db down")
        sweeper = RetentionSweeper(
            database, scheduler, logger=logger, repository_factory=failing
        )

        sweeper.on_tick()

        logger.error.assert_called_once_with("retention.sweep_failed", error="db down")
        assert sweeper.state is SweeperState.IDLE

        # next tick uses the same predicate and succeeds
        _seed(database, [datetime.now(timezone.utc) - timedelta(days=3)])
        sweeper.repository_factory = StatRepository
        sweeper.on_tick()
        assert _remaining_ids(database) == []

    def test_overlapping_tick_is_skipped(self, sweeper, logger):
        sweeper._lock.acquire()
        try:
            sweeper.on_tick()
        finally:
            sweeper._lock.release()

        logger.warning.assert_called_once()
        assert sweeper.state is SweeperState.IDLE
