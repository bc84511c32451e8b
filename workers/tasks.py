import structlog

from .celery_app import app
from .container import WorkerContainer

log = structlog.get_logger("workers.tasks")

container = WorkerContainer()
scheduler = container.scheduler()
# Constructing the sweeper registers its beat entry and callback
retention_sweeper = container.retention_sweeper()


@app.task(name="workers.tasks.run_scheduled_job", queue="maintenance")
def run_scheduled_job(job_name: str) -> None:
    """Dispatch a beat tick to the callback registered under ``job_name``."""
    log.info("scheduled_job.started", job=job_name)
    scheduler.run(job_name)
    log.info("scheduled_job.finished", job=job_name)
