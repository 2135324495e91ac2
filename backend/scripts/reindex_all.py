#!/usr/bin/env python3
"""
Mark profiles stale and rebuild their search artifacts.

Use after changing the embedding model or the searchable text layout.

Usage:
    # Mark everyone stale and let the Celery worker rebuild
    python scripts/reindex_all.py

    # Only some users
    python scripts/reindex_all.py --username alice --username bob

    # Rebuild in this process instead of dispatching to Celery
    python scripts/reindex_all.py --inline
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select, update

from folio.database import get_db_session
from folio.errors import ProviderError
from folio.models import User

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def mark_stale(usernames: Optional[List[str]] = None) -> int:
    """Set both stale flags; returns the number of users touched."""
    session = get_db_session()
    try:
        stmt = update(User).values(
            embeddings_stale=True,
            search_vector_stale=True,
            dirty_version=User.dirty_version + 1,
        )
        if usernames:
            stmt = stmt.where(User.username.in_([u.lower() for u in usernames]))
        result = session.execute(stmt)
        session.commit()
        return result.rowcount
    finally:
        session.close()


def count_stale() -> int:
    session = get_db_session()
    try:
        return session.execute(
            select(func.count()).select_from(User).where(
                User.embeddings_stale.is_(True) | User.search_vector_stale.is_(True)
            )
        ).scalar_one()
    finally:
        session.close()


def rebuild_inline() -> None:
    """Run builder pages until nothing is stale or a page makes no progress."""
    from folio.services.indexer import IndexBuilder

    builder = IndexBuilder()
    remaining = count_stale()
    while remaining:
        try:
            result = builder.run()
        except ProviderError as e:
            logger.error(f"Embedding provider failed, stopping: {e}")
            return
        logger.info(
            f"Page done: {result.embeddings_updated} embeddings, "
            f"{result.search_index_updated} search vectors, {result.failed} failed"
        )

        now_remaining = count_stale()
        if now_remaining >= remaining:
            logger.warning(f"{now_remaining} users still stale, giving up")
            return
        remaining = now_remaining


def main() -> None:
    parser = argparse.ArgumentParser(description="Rebuild profile search artifacts")
    parser.add_argument("--username", action="append", help="Limit to these usernames")
    parser.add_argument("--inline", action="store_true", help="Build in this process")
    args = parser.parse_args()

    touched = mark_stale(args.username)
    logger.info(f"Marked {touched} users stale")
    if not touched:
        return

    if args.inline:
        rebuild_inline()
    else:
        from folio.tasks.search import build_search_index

        build_search_index.delay()
        logger.info("Dispatched build_search_index")


if __name__ == "__main__":
    main()
