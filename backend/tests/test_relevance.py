"""
Tests for RelevanceScoringEngine.

Tests cover:
- Lifecycle (initialize before use)
- Single opportunity scoring and score bounds
- Batch scoring with invalid and failing items
- Score cache coherence across weight updates
- Neutral score for failing sub-scorers
- Threshold filtering and score write-back
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from analyst.services.cache import AnalysisCache, InMemoryCache
from analyst.services.completion import MockCompletionService
from analyst.services.relevance import RelevanceScoringEngine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

COMPONENT_NAMES = {"semantic", "keyword", "category", "location", "experience", "deadline"}


async def make_engine(settings, completion=None, cache=None):
    engine = RelevanceScoringEngine(
        completion or MockCompletionService(),
        cache=cache,
        settings=settings,
        clock=lambda: NOW,
    )
    await engine.initialize()
    return engine


class TestLifecycle:
    """Test initialization requirements."""

    @pytest.mark.asyncio
    async def test_score_before_initialize(self, settings, painter_profile, painting_opportunity):
        from analyst.exceptions import ConfigurationError

        engine = RelevanceScoringEngine(MockCompletionService(), settings=settings)

        with pytest.raises(ConfigurationError):
            await engine.score_one(painter_profile, painting_opportunity)

    @pytest.mark.asyncio
    async def test_shutdown_disables_scoring(self, settings, painter_profile, painting_opportunity):
        from analyst.exceptions import ConfigurationError

        engine = await make_engine(settings)
        await engine.shutdown()

        with pytest.raises(ConfigurationError):
            await engine.score_many(painter_profile, [painting_opportunity])

    def test_weights_from_settings(self, settings):
        settings.weight_semantic = 0.5
        engine = RelevanceScoringEngine(MockCompletionService(), settings=settings)
        assert engine.weights.semantic == 0.5


class TestScoreOne:
    """Test single opportunity scoring."""

    @pytest.mark.asyncio
    async def test_result_shape(self, settings, painter_profile, painting_opportunity):
        engine = await make_engine(settings)

        result = await engine.score_one(painter_profile, painting_opportunity)

        assert result.opportunity_id == "opp-1"
        assert 0.0 <= result.overall_score <= 1.0
        assert set(result.component_scores.model_dump()) == COMPONENT_NAMES
        assert result.component_scores.category == 1.0
        assert result.component_scores.location == 1.0
        assert result.component_scores.experience == 1.0
        assert result.component_scores.deadline == 0.5
        assert result.reasoning
        assert len(result.reasoning.split("; ")) <= 4

    @pytest.mark.asyncio
    async def test_deadline_uses_engine_clock(self, settings, painter_profile, painting_opportunity):
        engine = await make_engine(settings)
        urgent = painting_opportunity.model_copy(update={"deadline": NOW + timedelta(days=3)})

        result = await engine.score_one(painter_profile, urgent)

        assert result.component_scores.deadline == 1.0

    @pytest.mark.asyncio
    async def test_failing_sub_scorer_is_neutral(self, settings, painter_profile, painting_opportunity):
        engine = await make_engine(settings)
        keyword_scorer = next(s for s in engine.scorers if s.name == "keyword")
        keyword_scorer.score = AsyncMock(side_effect=RuntimeError("keyword failure"))

        result = await engine.score_one(painter_profile, painting_opportunity)

        assert result.component_scores.keyword == 0.5

    @pytest.mark.asyncio
    async def test_embedding_failure_still_bounded(
        self, settings, painter_profile, painting_opportunity, failing_completion
    ):
        engine = await make_engine(settings, completion=failing_completion)

        result = await engine.score_one(painter_profile, painting_opportunity)

        assert 0.0 <= result.component_scores.semantic <= 1.0
        assert 0.0 <= result.overall_score <= 1.0

    @pytest.mark.asyncio
    async def test_semantic_disabled(self, settings, painter_profile, painting_opportunity):
        settings.enable_semantic_scoring = False
        engine = await make_engine(settings)

        result = await engine.score_one(painter_profile, painting_opportunity)

        assert result.component_scores.semantic == 0.0


class TestScoreMany:
    """Test batch scoring."""

    @pytest.mark.asyncio
    async def test_batches_cover_all_items(self, settings, painter_profile, painting_opportunity):
        settings.scoring_batch_size = 2
        engine = await make_engine(settings)
        opportunities = [
            painting_opportunity.model_copy(update={"id": f"opp-{i}"}) for i in range(5)
        ]

        result = await engine.score_many(painter_profile, opportunities)

        assert sorted(result.scores) == [f"opp-{i}" for i in range(5)]
        assert len(result.detailed) == 5
        assert result.errors == []
        assert result.ai_service_used == "mock"
        assert result.average_score == pytest.approx(sum(result.scores.values()) / 5)

    @pytest.mark.asyncio
    async def test_invalid_items_reported(self, settings, painter_profile):
        engine = await make_engine(settings)
        items = [
            {"id": "good", "title": "Painting grant", "description": "For painters"},
            {"id": "bad", "description": "Missing title"},
        ]

        result = await engine.score_many(painter_profile, items)

        assert list(result.scores) == ["good"]
        assert len(result.errors) == 1
        assert result.errors[0].opportunity_id == "bad"
        assert result.errors[0].operation == "validation"

    @pytest.mark.asyncio
    async def test_failing_item_does_not_abort_batch(
        self, settings, painter_profile, painting_opportunity, unrelated_opportunity
    ):
        engine = await make_engine(settings)
        original = engine.score_one

        async def flaky(profile, opportunity):
            if opportunity.id == "opp-2":
                raise RuntimeError("scoring exploded")
            return await original(profile, opportunity)

        engine.score_one = flaky

        result = await engine.score_many(painter_profile, [painting_opportunity, unrelated_opportunity])

        assert list(result.scores) == ["opp-1"]
        assert result.errors[0].opportunity_id == "opp-2"
        assert result.errors[0].operation == "opportunity-scoring"
        assert "scoring exploded" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_empty_batch(self, settings, painter_profile):
        engine = await make_engine(settings)
        result = await engine.score_many(painter_profile, [])
        assert result.scores == {}
        assert result.average_score == 0.0

    @pytest.mark.asyncio
    async def test_score_opportunities_returns_mapping(self, settings, painter_profile, painting_opportunity):
        engine = await make_engine(settings)
        scores = await engine.score_opportunities(painter_profile, [painting_opportunity])
        assert list(scores) == ["opp-1"]

    @pytest.mark.asyncio
    async def test_summary(self, settings, painter_profile, painting_opportunity, unrelated_opportunity):
        engine = await make_engine(settings)
        result = await engine.score_many(painter_profile, [painting_opportunity, unrelated_opportunity])

        summary = result.summary()

        assert set(summary) == COMPONENT_NAMES
        assert summary["category"]["max"] == 1.0
        assert summary["category"]["min"] == 0.0


class TestWeightsAndCache:
    """Test weight updates and score cache coherence."""

    @pytest.mark.asyncio
    async def test_update_weights_merges(self, settings):
        engine = await make_engine(settings)
        weights = await engine.update_weights({"location": 0.5})
        assert weights.location == 0.5
        assert weights.semantic == 0.35

    @pytest.mark.asyncio
    async def test_negative_weight_rejected(self, settings):
        from analyst.exceptions import ValidationError

        engine = await make_engine(settings)
        with pytest.raises(ValidationError):
            await engine.update_weights({"keyword": -1})
        assert engine.weights.keyword == 0.25

    @pytest.mark.asyncio
    async def test_cached_scores_follow_weights(self, settings, painter_profile, painting_opportunity):
        cache = AnalysisCache(InMemoryCache())
        engine = await make_engine(settings, cache=cache)

        before = await engine.score_one(painter_profile, painting_opportunity)
        await engine.update_weights({
            "semantic": 0, "keyword": 0, "category": 1, "location": 0, "experience": 0, "deadline": 0,
        })
        after = await engine.score_one(painter_profile, painting_opportunity)

        assert after.overall_score == pytest.approx(after.component_scores.category)
        assert after.overall_score != before.overall_score

    @pytest.mark.asyncio
    async def test_cached_score_matches_fresh_engine(self, settings, painter_profile, painting_opportunity):
        engine = await make_engine(settings, cache=AnalysisCache(InMemoryCache()))
        await engine.score_one(painter_profile, painting_opportunity)
        await engine.update_weights({"semantic": 0.5})

        cached = await engine.score_one(painter_profile, painting_opportunity)
        fresh = await make_engine(settings)
        await fresh.update_weights({"semantic": 0.5})
        expected = await fresh.score_one(painter_profile, painting_opportunity)

        assert cached.overall_score == pytest.approx(expected.overall_score)
        assert cached.component_scores == expected.component_scores

    @pytest.mark.asyncio
    async def test_scoring_is_deterministic(self, settings, painter_profile, painting_opportunity):
        first = await (await make_engine(settings)).score_one(painter_profile, painting_opportunity)
        second = await (await make_engine(settings)).score_one(painter_profile, painting_opportunity)

        assert first.overall_score == second.overall_score
        assert first.component_scores == second.component_scores

    @pytest.mark.asyncio
    async def test_cache_hit_returns_same_result(self, settings, painter_profile, painting_opportunity):
        cache = AnalysisCache(InMemoryCache())
        engine = await make_engine(settings, cache=cache)

        first = await engine.score_one(painter_profile, painting_opportunity)
        engine.semantic.score = AsyncMock(side_effect=AssertionError("should not rescore"))
        second = await engine.score_one(painter_profile, painting_opportunity)

        assert second.overall_score == first.overall_score

    @pytest.mark.asyncio
    async def test_stale_fingerprint_ignored(self, settings, painter_profile, painting_opportunity):
        cache = AnalysisCache(InMemoryCache())
        engine = await make_engine(settings, cache=cache)
        await cache.set_score(painter_profile.id, painting_opportunity.id, {
            "weights": "stale",
            "result": {
                "opportunity_id": painting_opportunity.id,
                "overall_score": 0.0,
                "component_scores": {},
            },
        })

        result = await engine.score_one(painter_profile, painting_opportunity)

        assert result.overall_score > 0.0

    @pytest.mark.asyncio
    async def test_clear_cache(self, settings, painter_profile, painting_opportunity):
        cache = AnalysisCache(InMemoryCache())
        engine = await make_engine(settings, cache=cache)
        await engine.score_one(painter_profile, painting_opportunity)

        assert await engine.clear_cache() == 1


class TestRelevantAndWriteBack:
    """Test threshold filtering and write-back."""

    @pytest.mark.asyncio
    async def test_relevant_sorted_and_filtered(self, settings):
        from analyst.schemas import BatchScoringResult

        engine = await make_engine(settings)
        batch = BatchScoringResult(scores={"a": 0.2, "b": 0.9, "c": 0.5})

        assert engine.relevant(batch) == ["b", "c"]
        assert engine.relevant(batch, threshold=0.6) == ["b"]
        assert engine.relevant(batch, threshold=0.0) == ["b", "c", "a"]

    @pytest.mark.asyncio
    async def test_apply_scores(self, settings, painter_profile, painting_opportunity, unrelated_opportunity):
        engine = await make_engine(settings)
        batch = await engine.score_many(painter_profile, [painting_opportunity])

        updated = engine.apply_scores([painting_opportunity, unrelated_opportunity], batch)

        assert updated[0].relevance_score == batch.scores["opp-1"]
        assert set(updated[0].component_scores) == COMPONENT_NAMES
        assert updated[0].ai_service_used == "mock"
        assert updated[1].relevance_score is None
        assert painting_opportunity.relevance_score is None

    def test_health_check(self, settings):
        engine = RelevanceScoringEngine(MockCompletionService(), settings=settings)
        assert engine.health_check() == {
            "semantic": True,
            "keyword": True,
            "category": True,
            "location": True,
            "experience": True,
            "aggregator": True,
        }
