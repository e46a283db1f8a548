from datetime import timedelta

from celery import Celery

from newsdesk.core.config import get_settings

settings = get_settings()
celery_app = Celery(
    "newsdesk",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["newsdesk.tasks.jobs"],
)
celery_app.conf.task_always_eager = settings.celery_eager_mode
celery_app.conf.task_eager_propagates = True

celery_app.conf.task_routes = {
    "newsdesk.tasks.jobs.poll_authors": {"queue": "ingest"},
    "newsdesk.tasks.jobs.sweep_dedup_cache": {"queue": "default"},
}
if settings.poll_mode == "celery":
    celery_app.conf.beat_schedule = {
        "poll-authors": {
            "task": "newsdesk.tasks.jobs.poll_authors",
            "schedule": timedelta(minutes=settings.poll_interval_minutes),
        },
        "sweep-dedup-cache-hourly": {
            "task": "newsdesk.tasks.jobs.sweep_dedup_cache",
            "schedule": timedelta(hours=1),
        },
    }
