from celery import Celery
from datetime import timedelta
from vidcat.core.config import settings
from vidcat.core.logging import configure_logging

configure_logging(settings)

celery_app = Celery(
    "vidcat",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "vidcat.workers.tasks",
    ]
)

# Celery Configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=1800,
    task_soft_time_limit=1500,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

# Periodic Tasks (Celery Beat)
celery_app.conf.beat_schedule = {
    # Due channels are picked by their own daily/weekly frequency
    "check-watched-channels": {
        "task": "vidcat.workers.tasks.check_watched_channels",
        "schedule": timedelta(minutes=settings.watched_channel_check_interval_minutes),
    },
}
