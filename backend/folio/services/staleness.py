"""
Staleness Tracker

Every profile write that can change a user's searchable text goes through
mark_profile_dirty() inside its own transaction, then calls
request_search_build() once the transaction has committed. Only the
index builder clears the flags again.
"""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from folio.models import User
from folio.services.build_queue import get_build_queue

logger = logging.getLogger(__name__)


async def mark_profile_dirty(db: AsyncSession, user_id: str) -> None:
    """Flag both derived search artifacts as stale (caller commits)."""
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            embeddings_stale=True,
            search_vector_stale=True,
            dirty_version=User.dirty_version + 1,
        )
    )


def request_search_build(user_id: str) -> None:
    """
    Ask for a debounced index build for this user.

    Never raises: a failed enqueue leaves the flags set and the periodic
    sweep picks the user up later.
    """
    try:
        get_build_queue().enqueue(user_id)
    except Exception as e:
        logger.warning(f"Failed to enqueue search build for user {user_id}: {e}")
