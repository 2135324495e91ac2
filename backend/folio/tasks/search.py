"""
Background Tasks for Search Index Builds

build_search_index drains the debounced build queue, merges any
explicitly requested user ids and runs the IndexBuilder over the batch.

Retries:
    An embedding provider failure is retried with the same user ids
    after search_build_retry_seconds (max 3 retries). Text indexes for
    the batch are already written by then.
"""

import logging
import time
from typing import List, Optional

from prometheus_client import Counter, Histogram

from folio.celery import celery_app
from folio.config import get_settings
from folio.errors import ProviderError
from folio.services.build_queue import get_build_queue
from folio.services.indexer import IndexBuilder

logger = logging.getLogger(__name__)

# ==================== Prometheus Metrics ====================

TASK_DURATION = Histogram(
    "celery_task_duration_seconds",
    "Time spent executing Celery tasks",
    ["task_name"]
)

TASK_FAILURES = Counter(
    "celery_task_failures_total",
    "Number of Celery task failures",
    ["task_name"]
)


def collect_user_ids(user_ids: Optional[List[str]] = None) -> List[str]:
    """Merge explicit ids with whatever is waiting in the build queue."""
    queued: List[str] = []
    try:
        queue = get_build_queue()
        queued = queue.drain()
        if queue.pending_count():
            # More than one batch is waiting; keep draining.
            build_search_index.apply_async(countdown=0)
    except Exception as e:
        logger.warning(f"Could not drain search build queue: {e}")

    return list(dict.fromkeys([*(user_ids or []), *queued]))


@celery_app.task(bind=True, max_retries=3)
def build_search_index(self, user_ids: Optional[List[str]] = None) -> dict:
    """
    Rebuild embeddings and search vectors for a batch of users.

    Args:
        user_ids: Users named by build requests. Stale users are picked
            up even when this is empty.

    Returns:
        BuildResult as a dict
    """
    start_time = time.time()
    settings = get_settings()
    batch = collect_user_ids(user_ids) if self.request.retries == 0 else list(user_ids or [])

    try:
        result = IndexBuilder().run(batch)
        return result.to_dict()

    except ProviderError as exc:
        TASK_FAILURES.labels(task_name="build_search_index").inc()
        logger.error(f"Search build failed, retrying: {exc}")
        raise self.retry(
            exc=exc,
            countdown=settings.search_build_retry_seconds,
            args=[batch],
        )

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="build_search_index").observe(duration)
