"""
Tests for the individual relevance scorers and the score aggregator.

Run with: pytest tests/test_scorers.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from analyst.schemas import ArtistProfile, ComponentScores, Opportunity, ScoringWeights
from analyst.services.aggregator import ScoreAggregator, deadline_score, overall_tier
from analyst.services.completion import MockCompletionService
from analyst.services.scorers.category import CategoryScorer
from analyst.services.scorers.experience import (
    ExperienceScorer,
    classify_opportunity,
    classify_profile,
    experience_score,
)
from analyst.services.scorers.keyword import (
    KeywordScorer,
    count_occurrences,
    normalize_keyword_score,
    process_keywords,
    stem_word,
)
from analyst.services.scorers.location import location_score
from analyst.services.scorers.semantic import SemanticScorer, keyword_overlap_score

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def opportunity(**overrides):
    data = {"id": "opp", "title": "Open Call", "description": "An open call."}
    data.update(overrides)
    return Opportunity(**data)


class TestLocationScore:
    """Test location rules in order."""

    def test_neither_side(self):
        assert location_score(None, "") == 0.5

    def test_one_side_missing(self):
        assert location_score("", "Brooklyn, NY") == 0.7
        assert location_score(None, "Brooklyn, NY") == 0.7
        assert location_score("Brooklyn, NY", None) == 0.7

    def test_exact_match_ignores_case(self):
        assert location_score("Brooklyn, NY", " brooklyn, ny ") == 1.0

    def test_containment(self):
        assert location_score("Brooklyn, NY", "Brooklyn, NY, USA") == 0.8

    def test_remote(self):
        assert location_score("Brooklyn, NY", "Remote") == 0.9
        assert location_score("Brooklyn, NY", "Online only") == 0.9

    def test_mismatch(self):
        assert location_score("Brooklyn, NY", "Seattle, WA") == 0.3


class TestDeadlineScore:
    """Test deadline urgency buckets with a fixed clock."""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(days=3), 1.0),
        (timedelta(days=5), 1.0),
        (timedelta(days=7), 1.0),
        (timedelta(days=7, seconds=1), 0.8),
        (timedelta(days=30), 0.8),
        (timedelta(days=60), 0.6),
        (timedelta(days=100), 0.4),
        (timedelta(days=120), 0.4),
        (timedelta(days=365), 0.2),
        (timedelta(hours=-1), 0.0),
    ])
    def test_buckets(self, delta, expected):
        assert deadline_score(NOW + delta, NOW) == expected

    def test_no_deadline(self):
        assert deadline_score(None, NOW) == 0.5

    def test_naive_deadline_treated_as_utc(self):
        naive = (NOW + timedelta(days=10)).replace(tzinfo=None)
        assert deadline_score(naive, NOW) == 0.8


class TestExperienceScorer:
    """Test experience classification and scoring."""

    def test_advanced_artist_advanced_opportunity(self, painter_profile, painting_opportunity):
        assert classify_profile(painter_profile) == "advanced"
        assert classify_opportunity(painting_opportunity) == "advanced"

    @pytest.mark.asyncio
    async def test_matching_levels_score_one(self):
        profile = ArtistProfile(id="p", experience="Professional, established, exhibited internationally")
        opp = opportunity(description="Open to advanced artists")
        assert await ExperienceScorer().score(profile, opp) == 1.0

    def test_all_levels(self):
        opp = opportunity(description="All levels welcome")
        assert classify_opportunity(opp) == "any"
        assert experience_score("beginner", "any") == 0.8

    def test_mixed_profile_is_intermediate(self):
        profile = ArtistProfile(id="p", experience="Emerging artist, exhibited twice")
        assert classify_profile(profile) == "intermediate"

    def test_level_mismatch(self):
        assert experience_score("beginner", "advanced") == 0.4
        assert experience_score("intermediate", "advanced") == 0.7
        assert experience_score("advanced", "beginner") == 0.4


class TestCategoryScorer:
    """Test medium coverage."""

    @pytest.mark.asyncio
    async def test_no_mediums_is_neutral(self, empty_profile, painting_opportunity):
        assert await CategoryScorer().score(empty_profile, painting_opportunity) == 0.5

    @pytest.mark.asyncio
    async def test_fraction_of_mediums(self, painter_profile):
        opp = opportunity(title="Painting residency")
        assert await CategoryScorer().score(painter_profile, opp) == 0.5

    @pytest.mark.asyncio
    async def test_all_mediums(self, painter_profile, painting_opportunity):
        assert await CategoryScorer().score(painter_profile, painting_opportunity) == 1.0


class TestKeywordScorer:
    """Test stemming, matching and normalisation."""

    def test_stem_word(self):
        assert stem_word("painting") == "paint"
        assert stem_word("exhibitions") == "exhibition"
        assert stem_word("sing") == "sing"
        assert stem_word("red") == "red"

    def test_process_keywords_drops_stop_words(self):
        assert process_keywords(["Art and the City"]) == ["art", "city"]

    def test_count_occurrences_whole_word(self):
        assert count_occurrences("paint", "Paint, painting and PAINT") == 2
        assert count_occurrences("", "paint") == 0

    def test_normalize(self):
        assert normalize_keyword_score(0.0, 0) == 0.0
        assert normalize_keyword_score(10.0, 3) == pytest.approx(0.8216, abs=1e-3)
        assert normalize_keyword_score(100.0, 20) == 1.0

    @pytest.mark.asyncio
    async def test_no_matches_scores_zero(self, empty_profile, unrelated_opportunity):
        assert await KeywordScorer().score(empty_profile, unrelated_opportunity) == 0.0

    def test_analysis_tracks_matches(self):
        profile = ArtistProfile(id="p", mediums=["Sculpture"], location="Brooklyn")
        opp = opportunity(
            title="Sculpture Award",
            description="For sculpture in Brooklyn",
            location="Brooklyn",
            tags=["sculpture"],
        )
        analysis = KeywordScorer().analyze(profile, opp)

        assert analysis.total_matches == 5
        assert analysis.coverage == 1.0
        top = analysis.top_matches(1)[0]
        assert top.word == "sculpture"
        assert top.field == "title"
        assert analysis.stats()["unique_matches"] == 2

    @pytest.mark.asyncio
    async def test_score_bounded(self, painter_profile, painting_opportunity):
        score = await KeywordScorer().score(painter_profile, painting_opportunity)
        assert 0.0 < score <= 1.0


class TestSemanticScorer:
    """Test embedding scoring, caching and fallback."""

    @pytest.mark.asyncio
    async def test_score_in_range(self, painter_profile, painting_opportunity):
        scorer = SemanticScorer(MockCompletionService())
        score = await scorer.score(painter_profile, painting_opportunity)
        assert 0.0 <= score <= 1.0

    @pytest.mark.asyncio
    async def test_related_scores_higher(self, painter_profile, painting_opportunity, unrelated_opportunity):
        scorer = SemanticScorer(MockCompletionService())
        related = await scorer.score(painter_profile, painting_opportunity)
        unrelated = await scorer.score(painter_profile, unrelated_opportunity)
        assert related > unrelated

    @pytest.mark.asyncio
    async def test_disabled_scores_zero(self, painter_profile, painting_opportunity, failing_completion):
        scorer = SemanticScorer(failing_completion, enabled=False)
        assert await scorer.score(painter_profile, painting_opportunity) == 0.0
        assert failing_completion.embed_calls == 0

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_overlap(self, painter_profile, painting_opportunity, failing_completion):
        scorer = SemanticScorer(failing_completion)
        score = await scorer.score(painter_profile, painting_opportunity)
        assert score == pytest.approx(keyword_overlap_score(painter_profile, painting_opportunity))
        assert 0.0 <= score <= 1.0

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, painter_profile, painting_opportunity, slow_completion):
        scorer = SemanticScorer(slow_completion, timeout_seconds=0.05)
        score = await scorer.score(painter_profile, painting_opportunity)
        assert score == pytest.approx(keyword_overlap_score(painter_profile, painting_opportunity))

    def test_overlap_empty_union(self, empty_profile):
        opp = opportunity(title="a", description="b c")
        assert keyword_overlap_score(empty_profile, opp) == 0.1

    def test_overlap_uses_tags(self, painter_profile):
        opp = opportunity(title="x", description="y", tags=["Painting"])
        # {painting, sculpture, 4 skills, 2 interests} vs {painting}
        assert keyword_overlap_score(painter_profile, opp) == pytest.approx(1 / 8)

    @pytest.mark.asyncio
    async def test_embeddings_cached(self, painter_profile, painting_opportunity):
        from unittest.mock import AsyncMock

        from analyst.services.cache import AnalysisCache, InMemoryCache

        completion = MockCompletionService()
        completion.embed = AsyncMock(side_effect=completion.embed)
        scorer = SemanticScorer(completion, cache=AnalysisCache(InMemoryCache()))

        first = await scorer.score(painter_profile, painting_opportunity)
        second = await scorer.score(painter_profile, painting_opportunity)

        assert first == second
        assert completion.embed.await_count == 2


class TestScoreAggregator:
    """Test weighted aggregation and reasoning."""

    def test_uniform_components(self):
        components = ComponentScores(**{name: 0.6 for name in ScoringWeights.model_fields})
        assert ScoreAggregator().aggregate(components) == pytest.approx(0.6)

    def test_weights_are_normalised(self):
        aggregator = ScoreAggregator(ScoringWeights(
            semantic=2.0, keyword=2.0, category=0, location=0, experience=0, deadline=0,
        ))
        components = ComponentScores(semantic=1.0, keyword=0.5)
        assert aggregator.aggregate(components) == pytest.approx(0.75)

    def test_zero_weights(self):
        aggregator = ScoreAggregator(ScoringWeights(
            semantic=0, keyword=0, category=0, location=0, experience=0, deadline=0,
        ))
        assert aggregator.aggregate(ComponentScores(semantic=1.0)) == 0.0

    def test_clock_drives_deadline(self):
        aggregator = ScoreAggregator(clock=lambda: NOW)
        assert aggregator.deadline_score(NOW + timedelta(days=2)) == 1.0

    def test_reasoning(self):
        components = ComponentScores(
            semantic=0.9, keyword=0.1, category=0.9, location=0.9, experience=0.9, deadline=0.5,
        )
        reasoning = ScoreAggregator().reasoning(components, 0.85)

        phrases = reasoning.split("; ")
        assert phrases == [
            "Highly relevant opportunity",
            "Strong semantic match with artist profile",
            "Few matching keywords",
            "Perfect medium/category fit",
        ]

    def test_tiers(self):
        assert overall_tier(0.81) == "Highly relevant opportunity"
        assert overall_tier(0.8) == "Good match"
        assert overall_tier(0.5) == "Moderate relevance"
        assert overall_tier(0.4) == "Low relevance"

    def test_health_check(self):
        assert ScoreAggregator().health_check() is True
