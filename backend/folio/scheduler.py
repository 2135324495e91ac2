"""
Background Scheduler - Periodic sweep for stale search artifacts

Request-path enqueues are fire-and-forget, so a profile whose enqueue
failed keeps its stale flags without a pending build. The sweep
dispatches build_search_index on an interval; with no user ids the
builder picks up every user with a stale flag.

Default Schedule: Every 60 minutes (SEARCH_SWEEP_INTERVAL_MINUTES)
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from folio.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
scheduler = AsyncIOScheduler()


def sweep_stale_profiles() -> None:
    """Dispatch an index build for whatever is stale."""
    from folio.tasks.search import build_search_index

    try:
        build_search_index.delay()
        logger.info("Dispatched periodic search index sweep")
    except Exception as e:
        logger.warning(f"Failed to dispatch search index sweep: {e}")


def start_scheduler():
    """Start the background scheduler"""
    scheduler.add_job(
        sweep_stale_profiles,
        trigger=IntervalTrigger(minutes=settings.search_sweep_interval_minutes),
        id="sweep_stale_profiles",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: sweeping stale profiles every "
        f"{settings.search_sweep_interval_minutes} minutes"
    )


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown()
