"""
Index Builder - Rebuilds derived search artifacts for stale profiles

Runs inside the build_search_index Celery task with a synchronous
SQLAlchemy session.

Pipeline:
    1. Collect distinct user ids from the drained batch
    2. Fetch candidates: named users plus anyone with a stale flag
       (newest first, capped at search_build_page_size)
    3. Build searchable text for each candidate
    4. Embed texts of users with embeddings_stale (one batched call)
    5. Persist embeddings, one transaction per user
    6. Persist searchable_text + search_vector for users with
       search_vector_stale, one transaction per user
    7. Re-raise a provider failure from step 4 so the task can retry

Guarantees:
    - A flag is cleared only after its artifact has been written
    - A flag is cleared only while dirty_version still matches the value
      read at fetch time; an edit that lands mid-run keeps its flags set
    - Text indexing runs even when embedding fails
    - Re-running over fresh users is a no-op
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import func

from folio.config import get_settings
from folio.database import get_db_session
from folio.errors import PersistenceError, ProviderError
from folio.middleware.metrics import (
    record_embeddings_generated,
    record_persistence_failure,
    record_search_indexes_built,
)
from folio.models import User
from folio.services.embeddings import EmbeddingProvider, get_embedding_provider
from folio.services.text_search import to_search_vector

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Outcome of one builder run."""

    embeddings_updated: int = 0
    search_index_updated: int = 0
    total_processed: int = 0
    failed: int = 0
    superseded: int = 0
    message: str = "Batch search index build completed"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _Candidate:
    user_id: str
    text: str
    embeddings_stale: bool
    search_vector_stale: bool
    dirty_version: int = 0


@dataclass
class _EmbeddingOutcome:
    vectors: List[List[float]] = field(default_factory=list)
    error: Optional[ProviderError] = None


def _section_order(entry):
    return (entry.created_at or datetime.min, entry.id)


def _visible(entries):
    return sorted((e for e in entries if not e.hidden), key=_section_order)


def build_searchable_text(user: User) -> str:
    """
    Concatenate the discoverable fields of a profile.

    Only name, username, title, location and status are used from the
    general section; descriptions, contacts and hidden entries never
    reach the index.

    Returns:
        Single-spaced text, empty parts dropped
    """
    parts = [
        user.name,
        user.username,
        user.title,
        user.location,
        user.custom_status,
    ]

    for exp in _visible(user.work_experiences):
        parts.append(f"{exp.title or ''} {exp.company or ''}")

    for edu in _visible(user.education):
        parts.append(
            f"{edu.degree or ''} {edu.institution or ''} {edu.field_of_study or ''}"
        )

    for proj in _visible(user.projects):
        parts.append(f"{proj.title or ''} {proj.company or ''}")

    return " ".join(" ".join(p for p in parts if p).split())


def embed_texts(provider: EmbeddingProvider, texts: List[str]) -> List[List[float]]:
    """Run the async provider to completion in this worker's own loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(provider.embed_batch(texts))
    finally:
        loop.close()


class IndexBuilder:
    """
    Rebuilds embeddings and search vectors for stale users.

    Attributes:
        session_factory: Returns a new sync Session (caller closes)
        provider: Embedding provider, created per run when not given
        page_size: Maximum candidates per run

    Example:
        >>> result = IndexBuilder().run(["user-id-1"])
        >>> result.embeddings_updated
        1
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_db_session,
        provider: Optional[EmbeddingProvider] = None,
        page_size: Optional[int] = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.provider = provider
        self.page_size = page_size or settings.search_build_page_size
        self.dimensions = settings.embedding_dimensions

    def run(self, user_ids: Optional[Iterable[str]] = None) -> BuildResult:
        """
        Rebuild derived artifacts for the batch.

        Args:
            user_ids: Ids from the drained build requests (may be empty)

        Returns:
            BuildResult with per-artifact counts

        Raises:
            ProviderError: If the embedding step failed (after text
                indexing has completed)
        """
        requested = list(dict.fromkeys(u for u in (user_ids or []) if u))
        candidates = self._fetch_candidates(requested)

        if not candidates:
            logger.warning(f"No stale users found (requested={requested})")
            return BuildResult(message="No stale users found")

        result = BuildResult(total_processed=len(candidates))

        needing_embeddings = [c for c in candidates if c.embeddings_stale]
        outcome = _EmbeddingOutcome()
        if needing_embeddings:
            outcome = self._generate_embeddings(needing_embeddings)
            if outcome.error is None:
                for candidate, vector in zip(needing_embeddings, outcome.vectors):
                    try:
                        if self._persist_embedding(candidate, vector):
                            result.embeddings_updated += 1
                        else:
                            result.superseded += 1
                    except PersistenceError as e:
                        logger.error(f"Failed to update user embeddings: {e}")
                        record_persistence_failure("embedding")
                        result.failed += 1
                record_embeddings_generated(result.embeddings_updated)

        needing_index = [c for c in candidates if c.search_vector_stale]
        for candidate in needing_index:
            try:
                if self._persist_search_vector(candidate):
                    result.search_index_updated += 1
                else:
                    result.superseded += 1
            except PersistenceError as e:
                logger.error(f"Failed to update user search index: {e}")
                record_persistence_failure("search_vector")
                result.failed += 1
        record_search_indexes_built(result.search_index_updated)

        logger.info(
            f"Search build: {result.embeddings_updated} embeddings, "
            f"{result.search_index_updated} search vectors, "
            f"{result.total_processed} users, {result.failed} failed, "
            f"{result.superseded} superseded by newer edits"
        )

        if outcome.error is not None:
            raise outcome.error

        return result

    def _fetch_candidates(self, user_ids: List[str]) -> List[_Candidate]:
        session = self.session_factory()
        try:
            stmt = (
                select(User)
                .where(
                    or_(
                        User.id.in_(user_ids),
                        User.embeddings_stale.is_(True),
                        User.search_vector_stale.is_(True),
                    )
                )
                .options(
                    selectinload(User.projects),
                    selectinload(User.education),
                    selectinload(User.work_experiences),
                )
                .order_by(User.created_at.desc(), User.id)
                .limit(self.page_size)
            )
            users = session.execute(stmt).scalars().all()
            return [
                _Candidate(
                    user_id=user.id,
                    text=build_searchable_text(user),
                    embeddings_stale=bool(user.embeddings_stale),
                    search_vector_stale=bool(user.search_vector_stale),
                    dirty_version=user.dirty_version or 0,
                )
                for user in users
            ]
        finally:
            session.close()

    def _generate_embeddings(self, candidates: List[_Candidate]) -> _EmbeddingOutcome:
        logger.debug(f"Processing embeddings for {len(candidates)} users")
        try:
            provider = self.provider or get_embedding_provider()
            vectors = embed_texts(provider, [c.text for c in candidates])
            if len(vectors) != len(candidates):
                raise ProviderError(
                    f"Expected {len(candidates)} embeddings, got {len(vectors)}"
                )
            for vector in vectors:
                if len(vector) != self.dimensions:
                    raise ProviderError(
                        f"Expected {self.dimensions}-dim embeddings, got {len(vector)}"
                    )
        except ProviderError as e:
            logger.error(f"Failed to generate embeddings: {e}")
            return _EmbeddingOutcome(error=e)

        return _EmbeddingOutcome(vectors=vectors)

    def _persist_embedding(self, candidate: _Candidate, vector: List[float]) -> bool:
        return self._write(
            candidate,
            embedding=[float(x) for x in vector],
            embeddings_stale=False,
            embedding_updated_at=func.now(),
        )

    def _persist_search_vector(self, candidate: _Candidate) -> bool:
        return self._write(
            candidate,
            searchable_text=candidate.text,
            search_vector=to_search_vector(candidate.text),
            search_vector_stale=False,
            search_vector_updated_at=func.now(),
        )

    def _write(self, candidate: _Candidate, **values) -> bool:
        """
        Compare-and-clear write for one user.

        Returns:
            False when the profile was edited after it was fetched; nothing
            is written and the flags stay set for the next build.

        Raises:
            PersistenceError: If the transaction fails
        """
        session = self.session_factory()
        try:
            result = session.execute(
                update(User)
                .where(
                    User.id == candidate.user_id,
                    User.dirty_version == candidate.dirty_version,
                )
                .values(**values)
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(candidate.user_id, str(e)) from e
        finally:
            session.close()

        if result.rowcount == 0:
            logger.info(
                f"User {candidate.user_id} changed during the build, leaving it stale"
            )
            return False
        return True
