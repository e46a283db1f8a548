import asyncio

from celery.utils.log import get_task_logger

from newsdesk.core.observability import TASK_COUNT
from newsdesk.services.dedup import get_dedup_cache
from newsdesk.services.scheduler import build_scheduler
from newsdesk.tasks.celery_app import celery_app

logger = get_task_logger(__name__)

# The dedup cache lives per worker process; scheduled runs share it across ticks.
_scheduler = None


def _get_scheduler():
    global _scheduler
    if _scheduler is None:
        _scheduler = build_scheduler()
    return _scheduler


@celery_app.task(name="newsdesk.tasks.jobs.poll_authors")
def poll_authors() -> dict:
    try:
        results = asyncio.run(_get_scheduler().tick())
    except Exception:  # noqa: BLE001
        TASK_COUNT.labels("poll_authors", "failure").inc()
        logger.exception("Task failed poll_authors")
        raise
    failed_authors = [r["user"] for r in results if "error" in r]
    TASK_COUNT.labels("poll_authors", "success").inc()
    if failed_authors:
        logger.warning("Authors failed this run: %s", ", ".join(failed_authors))
    return {"results": results}


@celery_app.task(name="newsdesk.tasks.jobs.sweep_dedup_cache")
def sweep_dedup_cache() -> dict:
    removed = get_dedup_cache().sweep()
    TASK_COUNT.labels("sweep_dedup_cache", "success").inc()
    return {"deleted": removed}
