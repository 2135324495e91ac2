"""
Tests for the profile search engine.

Tests cover:
- Reciprocal rank fusion (absent-rank sentinel, monotonicity)
- Relevance floor and ordering
- Lexical-first short-circuit (no embedding call)
- Hybrid escalation and provider failure
- Embeddings are only read when escalating
"""
import re

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from sqlalchemy import event

from folio.errors import ProviderError, QueryValidationError
from folio.services.search_engine import (
    FusedCandidate,
    ProfileSearchEngine,
    passes_relevance_floor,
    rank_fused,
    reciprocal_rank_fusion,
)
from folio.services.text_search import to_search_vector

DIMS = 1536


def unit_vector(axis: int) -> list:
    vector = [0.0] * DIMS
    vector[axis] = 1.0
    return vector


class TestReciprocalRankFusion:
    """Tests for reciprocal_rank_fusion."""

    def test_better_in_both_lists_scores_higher(self):
        fused = reciprocal_rank_fusion(
            semantic=[("a", 0.9), ("b", 0.8)],
            lexical=[("a", 0.3), ("b", 0.2)],
        )
        scores = {c.user_id: c.fused_score for c in fused}
        assert scores["a"] > scores["b"]

    def test_absent_rank_defaults_to_cap_plus_one(self):
        fused = reciprocal_rank_fusion(semantic=[("a", 0.9)], lexical=[])

        (candidate,) = fused
        assert candidate.lexical_rank is None
        assert candidate.fused_score == pytest.approx(1 / 61 + 1 / 161)

    def test_sentinel_follows_candidate_cap(self):
        fused = reciprocal_rank_fusion(
            semantic=[], lexical=[("a", 0.2)], k=60, candidate_cap=10
        )
        assert fused[0].fused_score == pytest.approx(1 / 61 + 1 / 71)

    def test_full_outer_join(self):
        fused = reciprocal_rank_fusion(
            semantic=[("a", 0.9), ("b", 0.5)],
            lexical=[("b", 0.3), ("c", 0.1)],
        )
        by_id = {c.user_id: c for c in fused}

        assert set(by_id) == {"a", "b", "c"}
        assert by_id["b"].semantic_rank == 2
        assert by_id["b"].lexical_rank == 1
        assert by_id["c"].similarity is None

    def test_present_in_both_beats_single_list(self):
        fused = reciprocal_rank_fusion(
            semantic=[("solo", 0.9), ("both", 0.8)],
            lexical=[("both", 0.1)],
        )
        scores = {c.user_id: c.fused_score for c in fused}
        assert scores["both"] > scores["solo"]

    def test_lists_are_capped(self):
        semantic = [(f"u{i}", 0.5) for i in range(5)]
        fused = reciprocal_rank_fusion(semantic, [], candidate_cap=3)
        assert {c.user_id for c in fused} == {"u0", "u1", "u2"}


class TestRelevanceFloor:
    """Tests for passes_relevance_floor / rank_fused."""

    def test_semantic_only_above_similarity_floor_is_kept(self):
        candidate = FusedCandidate("a", similarity=0.25, semantic_rank=1, fused_score=1 / 61 + 1 / 161)
        assert passes_relevance_floor(candidate)

    def test_fused_score_alone_needs_minimum_signal(self):
        candidate = FusedCandidate("a", similarity=0.05, semantic_rank=1, fused_score=1 / 61 + 1 / 161)
        assert not passes_relevance_floor(candidate)

    def test_weak_lexical_match_kept_by_fused_score(self):
        candidate = FusedCandidate("a", lexical_score=0.01, lexical_rank=1, fused_score=1 / 61 + 1 / 161)
        assert passes_relevance_floor(candidate)

    def test_low_fused_low_similarity_dropped(self):
        candidate = FusedCandidate("a", similarity=0.15, semantic_rank=100, fused_score=1 / 160 + 1 / 161)
        assert not passes_relevance_floor(candidate)

    def test_missing_signals_count_as_zero(self):
        assert not passes_relevance_floor(FusedCandidate("a", fused_score=0.5))

    def test_ties_break_on_similarity_then_lexical(self):
        candidates = [
            FusedCandidate("low", similarity=0.3, lexical_score=0.2, fused_score=0.02),
            FusedCandidate("high", similarity=0.6, lexical_score=0.1, fused_score=0.02),
            FusedCandidate("lex", similarity=0.3, lexical_score=0.4, fused_score=0.02),
            FusedCandidate("top", similarity=0.2, fused_score=0.03),
        ]
        ranked = rank_fused(candidates)
        assert [c.user_id for c in ranked] == ["top", "high", "lex", "low"]

    def test_result_cap(self):
        candidates = [
            FusedCandidate(f"u{i}", similarity=0.5, fused_score=1 / (61 + i)) for i in range(60)
        ]
        assert len(rank_fused(candidates, limit=50)) == 50


class TestProfileSearchEngine:
    """Tests for ProfileSearchEngine against a real database."""

    @pytest.fixture
    def provider(self):
        provider = AsyncMock()
        provider.embed.return_value = unit_vector(0)
        return provider

    @pytest_asyncio.fixture
    async def seeded(self, make_user):
        alice_text = "Alice Smith alice Software Engineer Vancouver"
        bob_text = "Bob Lee bob Designer Toronto"
        alice = await make_user(
            "Alice Smith", "alice",
            title="Software Engineer", location="Vancouver",
            searchable_text=alice_text,
            search_vector=to_search_vector(alice_text),
            embedding=unit_vector(0),
        )
        bob = await make_user(
            "Bob Lee", "bob",
            title="Designer", location="Toronto",
            searchable_text=bob_text,
            search_vector=to_search_vector(bob_text),
            embedding=unit_vector(1),
        )
        return alice, bob

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, test_db, provider):
        engine = ProfileSearchEngine(test_db, provider=provider)
        with pytest.raises(QueryValidationError):
            await engine.search("   ")

    @pytest.mark.asyncio
    async def test_unknown_mode_rejected(self, test_db, provider):
        engine = ProfileSearchEngine(test_db, provider=provider)
        with pytest.raises(QueryValidationError):
            await engine.search("engineer", mode="fast")

    @pytest.mark.asyncio
    async def test_lexical_match_skips_embedding(self, test_db, provider, seeded):
        alice, _ = seeded
        engine = ProfileSearchEngine(test_db, provider=provider)

        results = await engine.search("software engineer")

        assert [r.id for r in results] == [alice.id]
        assert results[0].score > 0
        assert provider.embed.await_count == 0

    @pytest.mark.asyncio
    async def test_ai_mode_uses_same_ranking(self, test_db, provider, seeded):
        engine = ProfileSearchEngine(test_db, provider=provider)

        default = await engine.search("designer")
        ai = await engine.search("designer", mode="ai")

        assert [r.id for r in default] == [r.id for r in ai]

    @pytest.mark.asyncio
    async def test_escalates_when_nothing_matches_lexically(self, test_db, provider, seeded):
        alice, bob = seeded
        engine = ProfileSearchEngine(test_db, provider=provider)

        results = await engine.search("builds backend systems")

        provider.embed.assert_awaited_once_with("builds backend systems")
        # Alice's embedding equals the query vector; Bob's is orthogonal.
        assert [r.id for r in results] == [alice.id]
        assert results[0].score == pytest.approx(1 / 61 + 1 / 161)

    @pytest.mark.asyncio
    async def test_users_without_any_artifact_never_returned(self, test_db, provider, make_user):
        await make_user("Carol Fresh", "carol", title="Software Engineer")
        engine = ProfileSearchEngine(test_db, provider=provider)

        assert await engine.search("software engineer") == []
        assert await engine.search("carol") == []

    @pytest.mark.asyncio
    async def test_provider_failure_propagates(self, test_db, provider, seeded):
        provider.embed.side_effect = ProviderError("timeout")
        engine = ProfileSearchEngine(test_db, provider=provider)

        with pytest.raises(ProviderError):
            await engine.search("writes poetry")


class TestEmbeddingReads:
    """The lexical pass never reads the embedding column."""

    EMBEDDING_COLUMN = re.compile(r"users\.embedding\b")

    @pytest.fixture
    def statements(self, test_db):
        captured = []
        sync_engine = test_db.bind.sync_engine

        def capture(conn, cursor, statement, parameters, context, executemany):
            captured.append(statement)

        event.listen(sync_engine, "before_cursor_execute", capture)
        yield captured
        event.remove(sync_engine, "before_cursor_execute", capture)

    @pytest_asyncio.fixture
    async def indexed(self, make_user):
        text = "Alice Smith alice Software Engineer"
        return await make_user(
            "Alice Smith", "alice",
            title="Software Engineer",
            searchable_text=text,
            search_vector=to_search_vector(text),
            embedding=unit_vector(0),
        )

    @pytest.mark.asyncio
    async def test_lexical_hit_skips_embedding_column(self, test_db, indexed, statements):
        provider = AsyncMock()
        engine = ProfileSearchEngine(test_db, provider=provider)

        results = await engine.search("software engineer")

        assert [r.id for r in results] == [indexed.id]
        selects = [s for s in statements if s.lstrip().upper().startswith("SELECT")]
        assert selects
        assert not any(self.EMBEDDING_COLUMN.search(s) for s in selects)

    @pytest.mark.asyncio
    async def test_escalation_reads_embedding_column(self, test_db, indexed, statements):
        provider = AsyncMock()
        provider.embed.return_value = unit_vector(0)
        engine = ProfileSearchEngine(test_db, provider=provider)

        results = await engine.search("builds backend systems")

        assert [r.id for r in results] == [indexed.id]
        assert any(self.EMBEDDING_COLUMN.search(s) for s in statements)
