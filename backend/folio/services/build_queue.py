"""
Debounced Search Build Queue

Coalesces "search/build {user_id}" requests into batches so a burst of
profile edits triggers one index build instead of one per keystroke.

Redis Keys:
    search:build:pending    SET of user ids waiting for a build
    search:build:scheduled  marker (SET NX EX window) for the delayed run

Batching Rules:
    - First request in a window schedules a build after `window` seconds
    - Once `max_batch` ids are pending, a build is dispatched immediately
    - The consumer drains at most `max_batch` ids per run

Usage:
    queue = get_build_queue()
    queue.enqueue(user_id)          # request path, after commit
    user_ids = queue.drain()        # inside the Celery task
"""

import logging
from typing import Callable, List, Optional

import redis

from folio.config import get_settings
from folio.middleware.metrics import update_pending_builds

logger = logging.getLogger(__name__)

PENDING_KEY = "search:build:pending"
SCHEDULED_KEY = "search:build:scheduled"


def dispatch_build(countdown: int) -> None:
    """Schedule the Celery index build task."""
    from folio.tasks.search import build_search_index

    build_search_index.apply_async(countdown=countdown)


class SearchBuildQueue:
    """
    Redis-backed debounce window in front of build_search_index.

    Attributes:
        redis: Sync Redis client (decode_responses=True)
        window: Seconds to wait for more requests before building
        max_batch: Pending ids that trigger an immediate build
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        window: int = 30,
        max_batch: int = 5,
        dispatch: Callable[[int], None] = dispatch_build,
    ):
        self.redis = redis_client
        self.window = window
        self.max_batch = max_batch
        self._dispatch = dispatch

    def enqueue(self, user_id: str) -> None:
        """
        Add a user to the pending set and schedule a build if needed.

        Raises:
            redis.RedisError: If Redis is unreachable (callers on the
                request path swallow this)
        """
        if not user_id:
            return

        self.redis.sadd(PENDING_KEY, user_id)
        pending = self.redis.scard(PENDING_KEY)
        update_pending_builds(pending)

        if pending >= self.max_batch:
            logger.debug(f"Build batch full ({pending} pending), dispatching now")
            self._dispatch(0)
        elif self.redis.set(SCHEDULED_KEY, "1", nx=True, ex=self.window):
            logger.debug(f"Scheduled search build in {self.window}s")
            self._dispatch(self.window)

    def drain(self, limit: Optional[int] = None) -> List[str]:
        """
        Pop up to `limit` pending user ids (defaults to max_batch).

        Clears the schedule marker once the pending set is empty so the
        next request opens a new window.
        """
        limit = limit or self.max_batch
        user_ids = self.redis.spop(PENDING_KEY, limit) or []

        remaining = self.redis.scard(PENDING_KEY)
        update_pending_builds(remaining)
        if not remaining:
            self.redis.delete(SCHEDULED_KEY)

        return sorted(user_ids)

    def pending_count(self) -> int:
        return self.redis.scard(PENDING_KEY)


_build_queue: Optional[SearchBuildQueue] = None


def get_build_queue() -> SearchBuildQueue:
    """Get or create the shared build queue."""
    global _build_queue
    if _build_queue is None:
        settings = get_settings()
        client = redis.from_url(settings.redis_url, decode_responses=True)
        _build_queue = SearchBuildQueue(
            client,
            window=settings.search_build_delay_seconds,
            max_batch=settings.search_build_max_batch,
        )
    return _build_queue
