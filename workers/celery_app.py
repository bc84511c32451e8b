from celery import Celery
from kombu import Queue

from core.logging import configure_logging
from core.settings import SETTINGS

configure_logging(SETTINGS.APP)

app = Celery(
    "analytics",
    broker=SETTINGS.REDIS.CELERY_BROKER_URL,
    backend=SETTINGS.REDIS.CELERY_RESULT_BACKEND,
    include=["workers.tasks"],
)

app.conf.update(
    task_default_queue="default",
    task_queues=(
        Queue("default"),
        Queue("maintenance"),
    ),
    task_routes={
        "workers.tasks.run_scheduled_job": {"queue": "maintenance"},
    },
    # Entries are added by CeleryBeatScheduler.register
    beat_schedule={},
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_hijack_root_logger=False,
)
