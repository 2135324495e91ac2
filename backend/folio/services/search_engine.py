"""
Profile Search Engine - Lexical-first search with hybrid RRF escalation

Answers GET /api/search from the persisted search artifacts only. The
one embedding computed at request time is the query's own, and only when
the lexical pass finds nothing.

Architecture:
    query
      │
      ├─► Lexical pass (plainto_tsquery AND-match, ts_rank, top 50)
      │      reads search vectors only, never embeddings
      │      └─ rows found → return
      │
      └─► Hybrid pass
             ├─ Semantic: cosine distance to query embedding (top 100)
             ├─ Lexical:  same predicate, rank desc (top 100)
             └─ RRF (k=60, absent rank = cap + 1) → relevance floor → top 50

Scores are not comparable across passes: lexical results carry ts_rank,
hybrid results carry the fused RRF score.
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from folio.config import get_settings
from folio.errors import QueryValidationError
from folio.middleware.metrics import record_search
from folio.models import User
from folio.services.embeddings import (
    EmbeddingProvider,
    cosine_distance,
    get_embedding_provider,
)
from folio.services.text_search import matches, parse_plain_query, ts_rank

logger = logging.getLogger(__name__)

SEARCH_MODES = ("default", "ai")

# Relevance floor thresholds
MIN_SIMILARITY = 0.2
MIN_LEXICAL_SCORE = 0.05
MIN_FUSED_SCORE = 0.015
SANITY_SIMILARITY = 0.1

# Columns returned to the client
SUMMARY_COLUMNS = (User.id, User.name, User.username, User.image, User.custom_status)


@dataclass
class SearchResult:
    """Lightweight profile summary returned by the search endpoint."""

    id: str
    name: str
    username: Optional[str]
    image: Optional[str]
    custom_status: Optional[str]
    score: float


@dataclass
class FusedCandidate:
    """One user after the full outer join of both sub-rankings."""

    user_id: str
    similarity: Optional[float] = None
    lexical_score: Optional[float] = None
    semantic_rank: Optional[int] = None
    lexical_rank: Optional[int] = None
    fused_score: float = 0.0


def reciprocal_rank_fusion(
    semantic: Sequence[Tuple[str, float]],
    lexical: Sequence[Tuple[str, float]],
    k: int = 60,
    candidate_cap: int = 100,
) -> List[FusedCandidate]:
    """
    Fuse the semantic and lexical sub-rankings with RRF.

    Formula: score(u) = 1/(k + semantic_rank) + 1/(k + lexical_rank)

    A user missing from one list takes rank candidate_cap + 1 for that
    term, so appearing in either list counts while appearing in both
    counts more.

    Args:
        semantic: (user_id, similarity) ordered nearest first
        lexical: (user_id, ts_rank) ordered best first
        k: Smoothing constant
        candidate_cap: Length cap applied to each sub-ranking

    Returns:
        One FusedCandidate per user present in either list (unsorted)
    """
    absent_rank = candidate_cap + 1
    candidates: Dict[str, FusedCandidate] = {}

    for rank, (user_id, similarity) in enumerate(semantic[:candidate_cap], start=1):
        candidates[user_id] = FusedCandidate(
            user_id=user_id, similarity=similarity, semantic_rank=rank
        )

    for rank, (user_id, score) in enumerate(lexical[:candidate_cap], start=1):
        candidate = candidates.setdefault(user_id, FusedCandidate(user_id=user_id))
        candidate.lexical_score = score
        candidate.lexical_rank = rank

    for candidate in candidates.values():
        candidate.fused_score = (
            1.0 / (k + (candidate.semantic_rank or absent_rank))
            + 1.0 / (k + (candidate.lexical_rank or absent_rank))
        )

    return list(candidates.values())


def passes_relevance_floor(candidate: FusedCandidate) -> bool:
    """
    Two-tier gate against noise.

    Keeps a candidate with a strong showing in either signal or a decent
    fused score, as long as it has some lexical match or a minimum of
    semantic similarity. Missing signals count as 0.
    """
    similarity = candidate.similarity or 0.0
    lexical_score = candidate.lexical_score or 0.0

    strong = (
        similarity >= MIN_SIMILARITY
        or lexical_score > MIN_LEXICAL_SCORE
        or candidate.fused_score >= MIN_FUSED_SCORE
    )
    sane = similarity >= SANITY_SIMILARITY or lexical_score > 0
    return strong and sane


def rank_fused(candidates: List[FusedCandidate], limit: int = 50) -> List[FusedCandidate]:
    """Apply the relevance floor, sort and cap."""
    kept = [c for c in candidates if passes_relevance_floor(c)]
    kept.sort(
        key=lambda c: (
            -c.fused_score,
            -(c.similarity or 0.0),
            -(c.lexical_score or 0.0),
        )
    )
    return kept[:limit]


class ProfileSearchEngine:
    """
    Request-scoped profile search.

    Attributes:
        db: Async session for the current request
        provider: Embedding provider for query vectors (lazy)

    Example:
        >>> engine = ProfileSearchEngine(db)
        >>> results = await engine.search("software engineer")
    """

    def __init__(
        self,
        db: AsyncSession,
        provider: Optional[EmbeddingProvider] = None,
    ):
        settings = get_settings()
        self.db = db
        self._provider = provider
        self.result_limit = settings.search_result_limit
        self.candidate_cap = settings.search_candidate_cap
        self.rrf_k = settings.search_rrf_k

    @property
    def provider(self) -> EmbeddingProvider:
        if self._provider is None:
            self._provider = get_embedding_provider()
        return self._provider

    async def search(self, query: Optional[str], mode: str = "default") -> List[SearchResult]:
        """
        Search profiles.

        Args:
            query: Free-text query
            mode: "default" or "ai" (same ranking, different caching)

        Returns:
            Up to search_result_limit results, best first (may be empty)

        Raises:
            QueryValidationError: Blank query or unknown mode
            ProviderError: Query embedding failed during escalation
        """
        query = (query or "").strip()
        if not query:
            raise QueryValidationError("Query is required")
        if mode not in SEARCH_MODES:
            raise QueryValidationError(f"Unknown search mode: {mode}")

        start_time = time.perf_counter()
        lexemes = parse_plain_query(query)
        indexed = await self._load_search_vectors()

        lexical = self._lexical_ranking(indexed, lexemes)
        if lexical:
            results = [
                self._to_result(indexed[user_id], score)
                for user_id, score in lexical[:self.result_limit]
            ]
            search_pass = "lexical"
        else:
            results = await self._hybrid_search(indexed, lexemes, query)
            search_pass = "hybrid" if results else "empty"

        duration = time.perf_counter() - start_time
        record_search(search_pass, mode, duration)
        logger.info(
            f"Search mode={mode} pass={search_pass} results={len(results)} "
            f"({duration * 1000:.1f}ms)"
        )
        return results

    async def _load_search_vectors(self) -> Dict[str, Row]:
        """Summary columns plus search_vector for every text-indexed user."""
        stmt = select(*SUMMARY_COLUMNS, User.search_vector).where(
            User.search_vector.is_not(None)
        )
        result = await self.db.execute(stmt)
        return {row.id: row for row in result.all()}

    async def _load_embeddings(self) -> Dict[str, Row]:
        """Summary columns plus embedding; only read when escalating."""
        stmt = select(*SUMMARY_COLUMNS, User.embedding).where(
            User.embedding.is_not(None)
        )
        result = await self.db.execute(stmt)
        return {row.id: row for row in result.all()}

    def _lexical_ranking(
        self, rows: Dict[str, Row], lexemes: List[str]
    ) -> List[Tuple[str, float]]:
        """Users matching every lexeme, best ts_rank first."""
        if not lexemes:
            return []

        ranked = [
            (user.id, ts_rank(user.search_vector, lexemes))
            for user in rows.values()
            if user.search_vector and matches(user.search_vector, lexemes)
        ]
        ranked.sort(key=lambda r: (-r[1], r[0]))
        return ranked

    def _semantic_ranking(
        self, rows: Dict[str, Row], query_embedding: List[float]
    ) -> List[Tuple[str, float]]:
        """Users with an embedding, nearest first, as (id, similarity)."""
        distances = [
            (user.id, cosine_distance(query_embedding, user.embedding))
            for user in rows.values()
            if user.embedding
        ]
        distances.sort(key=lambda r: (r[1], r[0]))
        return [
            (user_id, 1.0 - distance)
            for user_id, distance in distances[:self.candidate_cap]
        ]

    async def _hybrid_search(
        self, indexed: Dict[str, Row], lexemes: List[str], query: str
    ) -> List[SearchResult]:
        query_embedding = await self.provider.embed(query)
        embedded = await self._load_embeddings()

        semantic = self._semantic_ranking(embedded, query_embedding)
        lexical = self._lexical_ranking(indexed, lexemes)[:self.candidate_cap]

        fused = reciprocal_rank_fusion(
            semantic, lexical, k=self.rrf_k, candidate_cap=self.candidate_cap
        )
        ranked = rank_fused(fused, limit=self.result_limit)
        logger.debug(
            f"Hybrid search: {len(semantic)} semantic, {len(lexical)} lexical, "
            f"{len(fused)} fused, {len(ranked)} kept"
        )
        summaries = {**embedded, **indexed}
        return [self._to_result(summaries[c.user_id], c.fused_score) for c in ranked]

    @staticmethod
    def _to_result(user: Row, score: float) -> SearchResult:
        return SearchResult(
            id=user.id,
            name=user.name,
            username=user.username,
            image=user.image,
            custom_status=user.custom_status,
            score=score,
        )
