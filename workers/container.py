"""Worker dependency injection container."""
from datetime import timedelta

import structlog
from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.resources import DatabaseResource
from workers.celery_app import app as celery_app
from workers.retention import RetentionSweeper
from workers.scheduler import CeleryBeatScheduler

logger = structlog.get_logger("workers")


class WorkerInfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure dependencies for workers."""

    settings = providers.Object(SETTINGS)
    logger = providers.Object(logger)

    database = providers.Singleton(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
    )


class WorkerContainer(containers.DeclarativeContainer):
    """Main worker container."""

    infrastructure = providers.Container(WorkerInfrastructureContainer)

    scheduler = providers.Singleton(CeleryBeatScheduler, app=celery_app)

    retention_sweeper = providers.Singleton(
        RetentionSweeper,
        database=infrastructure.database,
        scheduler=scheduler,
        logger=infrastructure.logger,
        retention=providers.Object(
            timedelta(hours=SETTINGS.RETENTION.STAT_RETENTION_HOURS)
        ),
        cron_expression=SETTINGS.RETENTION.STAT_SWEEP_CRON,
    )
