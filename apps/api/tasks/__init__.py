"""
Celery tasks for the check-in jobs.

Tasks are defined here and imported by both the beat scheduler (to
enqueue) and the worker (to execute).
"""
from celery import Celery
from core.config import settings
from celerybeat_schedule import beat_schedule

# Create Celery app instance
celery_app = Celery(
    "safety_checkin",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Both jobs fire every minute; nothing should outlive its slot.
    task_time_limit=60,
    task_soft_time_limit=55,
    beat_schedule=beat_schedule,
)

# Import tasks to register them
from . import checkin_tasks  # noqa: E402

__all__ = ["celery_app"]
