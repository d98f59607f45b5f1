"""
Celery application configuration.
Sets up Celery with Redis broker and result backend for out-of-band email
delivery and the periodic stale-generation sweep (run a beat process).
"""
import logging
from celery import Celery
from celery.signals import worker_process_init
from prometheus_client import start_http_server

from studio.config import settings
from studio.utils.logging import configure_logging

logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "portraitstudio",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "studio.tasks.email_tasks",
        "studio.tasks.maintenance_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,
    beat_schedule={
        "fail-stale-generations": {
            "task": "fail_stale_generations",
            "schedule": 5 * 60.0,
        },
    },
)


@worker_process_init.connect
def init_worker_process(**kwargs):
    """Configure logging and expose worker metrics once per worker process."""
    configure_logging('studio-worker', settings.log_level)

    try:
        start_http_server(settings.worker_metrics_port)
    except OSError as e:
        # Another worker process already bound the port
        logger.warning(f"Failed to start metrics server: {e}")
