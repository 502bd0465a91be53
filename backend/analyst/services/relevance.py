"""
Relevance Scoring Engine - Six-Signal Opportunity Scoring

For each (profile, opportunity) pair:
    1. Five sub-scorers run concurrently (semantic, keyword, category,
       location, experience)
    2. Deadline urgency is computed locally
    3. The aggregator combines the six components with the active weights
       and renders a short reasoning string

Batches:
    Opportunities are processed in sequential batches of scoring_batch_size;
    within a batch every opportunity is scored concurrently. A failure on
    one opportunity is recorded in BatchScoringResult.errors and never
    aborts the rest of the batch.

Score cache:
    score:{profile_id}:{opportunity_id} → {"weights": fingerprint, "result": ...}
    Entries computed under different weights are ignored, and
    update_weights() clears the whole layer.

Usage:
    engine = RelevanceScoringEngine(completion=get_completion_service(), cache=create_cache())
    await engine.initialize()
    batch = await engine.score_many(profile, opportunities)
    top_ids = engine.relevant(batch)
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from analyst.config import Settings, get_settings
from analyst.exceptions import ConfigurationError, ValidationError
from analyst.middleware.metrics import record_scoring_latency
from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile
from analyst.schemas.scoring import (
    BatchScoringResult,
    ComponentScores,
    ScoringError,
    ScoringResult,
    ScoringWeights,
    WeightsUpdate,
)
from analyst.services.aggregator import ScoreAggregator, utc_now
from analyst.services.cache import AnalysisCache, CacheLayer, hash_content
from analyst.services.completion import CompletionService
from analyst.services.scorers.base import Scorer
from analyst.services.scorers.category import CategoryScorer
from analyst.services.scorers.experience import ExperienceScorer
from analyst.services.scorers.keyword import KeywordScorer
from analyst.services.scorers.location import LocationScorer
from analyst.services.scorers.semantic import SemanticScorer

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5

OpportunityInput = Union[Opportunity, Mapping[str, Any]]


def coerce_opportunity(item: OpportunityInput) -> Opportunity:
    """
    Validate a raw mapping into an Opportunity.

    Raises:
        ValidationError: If required fields (id, title, description) are missing or malformed
    """
    if isinstance(item, Opportunity):
        return item
    try:
        return Opportunity.model_validate(item)
    except PydanticValidationError as e:
        opportunity_id = item.get("id") if isinstance(item, Mapping) else None
        raise ValidationError.from_pydantic(
            "Invalid opportunity payload", e, {"opportunity_id": opportunity_id}
        ) from e


def coerce_weights_update(partial: Union[WeightsUpdate, Mapping[str, Any]]) -> WeightsUpdate:
    if isinstance(partial, WeightsUpdate):
        return partial
    try:
        return WeightsUpdate.model_validate(partial)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic("Invalid scoring weights", e) from e


class RelevanceScoringEngine:
    """
    Scores opportunities against an artist profile.

    Attributes:
        completion: Completion service (embeddings for the semantic scorer)
        cache: Analysis cache (score and embedding layers), or None
        aggregator: Weighted aggregation and reasoning
        batch_size: Opportunities scored concurrently per batch
        min_relevance_threshold: Default cut-off used by relevant()
    """

    def __init__(
        self,
        completion: CompletionService,
        cache: Optional[AnalysisCache] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        settings = settings or get_settings()
        self.completion = completion
        self.cache = cache if settings.cache_results else None
        self.batch_size = max(1, settings.scoring_batch_size)
        self.min_relevance_threshold = settings.min_relevance_threshold

        self.semantic = SemanticScorer(
            completion,
            cache=self.cache,
            max_text_length=settings.max_embedding_text_length,
            timeout_seconds=settings.completion_timeout_seconds,
            enabled=settings.enable_semantic_scoring,
        )
        self.scorers: List[Scorer] = [
            self.semantic,
            KeywordScorer(),
            CategoryScorer(),
            LocationScorer(),
            ExperienceScorer(),
        ]
        self.aggregator = ScoreAggregator(
            ScoringWeights(
                semantic=settings.weight_semantic,
                keyword=settings.weight_keyword,
                category=settings.weight_category,
                location=settings.weight_location,
                experience=settings.weight_experience,
                deadline=settings.weight_deadline,
            ),
            clock=clock,
        )
        self._initialized = False

    @property
    def weights(self) -> ScoringWeights:
        return self.aggregator.weights

    @property
    def initialized(self) -> bool:
        return self._initialized

    def weights_fingerprint(self) -> str:
        return hash_content(self.weights.model_dump())

    async def initialize(self) -> None:
        if self._initialized:
            return
        logger.info(
            f"Relevance scoring engine initialized (provider: {self.completion.provider_id}, "
            f"semantic scoring: {'on' if self.semantic.enabled else 'off'})"
        )
        self._initialized = True

    async def shutdown(self) -> None:
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise ConfigurationError(
                "RelevanceScoringEngine is not initialized",
                {"operation": "opportunity-scoring"},
            )

    async def _run_scorer(self, scorer: Scorer, profile: ArtistProfile, opportunity: Opportunity) -> float:
        try:
            return await scorer.score(profile, opportunity)
        except Exception as e:
            logger.warning(
                f"{scorer.name} scorer failed for opportunity {opportunity.id}, "
                f"using neutral score: {e}"
            )
            return NEUTRAL_SCORE

    async def score_one(self, profile: ArtistProfile, opportunity: Opportunity) -> ScoringResult:
        """
        Score one opportunity.

        Raises:
            ConfigurationError: If the engine has not been initialized
        """
        self._ensure_initialized()
        start = time.perf_counter()
        fingerprint = self.weights_fingerprint()

        if self.cache:
            cached = await self.cache.get_score(profile.id, opportunity.id)
            if cached and cached.get("weights") == fingerprint:
                return ScoringResult.model_validate(cached["result"])

        values = await asyncio.gather(
            *(self._run_scorer(scorer, profile, opportunity) for scorer in self.scorers)
        )
        components = ComponentScores(
            **{scorer.name: value for scorer, value in zip(self.scorers, values)},
            deadline=self.aggregator.deadline_score(opportunity.deadline),
        )

        overall = self.aggregator.aggregate(components)
        duration = time.perf_counter() - start
        result = ScoringResult(
            opportunity_id=opportunity.id,
            overall_score=overall,
            component_scores=components,
            reasoning=self.aggregator.reasoning(components, overall),
            processing_time_ms=duration * 1000,
        )
        record_scoring_latency(duration)

        if self.cache:
            await self.cache.set_score(
                profile.id,
                opportunity.id,
                {"weights": fingerprint, "result": result.model_dump(mode="json")},
            )
        return result

    async def score_many(
        self,
        profile: ArtistProfile,
        opportunities: Sequence[OpportunityInput],
    ) -> BatchScoringResult:
        """
        Score a batch of opportunities.

        Raw mappings are validated into Opportunity first; invalid items and
        per-opportunity scoring failures are collected in errors[].

        Returns:
            BatchScoringResult with scores keyed by opportunity id
        """
        self._ensure_initialized()
        start = time.perf_counter()
        errors: List[ScoringError] = []
        valid: List[Opportunity] = []

        for item in opportunities:
            try:
                valid.append(coerce_opportunity(item))
            except ValidationError as e:
                errors.append(ScoringError(
                    opportunity_id=e.context.get("opportunity_id"),
                    operation="validation",
                    message=f"{e.message}: {e.errors}",
                ))

        detailed: List[ScoringResult] = []
        for i in range(0, len(valid), self.batch_size):
            batch = valid[i:i + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.score_one(profile, opportunity) for opportunity in batch),
                return_exceptions=True,
            )
            for opportunity, outcome in zip(batch, outcomes):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    logger.error(f"Scoring failed for opportunity {opportunity.id}: {outcome}")
                    errors.append(ScoringError(
                        opportunity_id=opportunity.id,
                        operation="opportunity-scoring",
                        message=str(outcome),
                    ))
                else:
                    detailed.append(outcome)

        scores = {r.opportunity_id: r.overall_score for r in detailed}
        average = sum(scores.values()) / len(scores) if scores else 0.0

        if errors:
            logger.warning(f"Scored {len(detailed)} opportunities for profile {profile.id} with {len(errors)} errors")

        return BatchScoringResult(
            scores=scores,
            detailed=detailed,
            average_score=average,
            processing_time_ms=(time.perf_counter() - start) * 1000,
            ai_service_used=self.completion.provider_id,
            errors=errors,
        )

    async def score_opportunities(
        self,
        profile: ArtistProfile,
        opportunities: Sequence[OpportunityInput],
    ) -> Dict[str, float]:
        result = await self.score_many(profile, opportunities)
        return result.scores

    async def update_weights(self, partial: Union[WeightsUpdate, Mapping[str, Any]]) -> ScoringWeights:
        """
        Merge a partial weight update and invalidate every cached score.

        Raises:
            ValidationError: If a weight is negative or not a number
        """
        update = coerce_weights_update(partial)
        merged = {**self.weights.model_dump(), **update.model_dump(exclude_none=True)}
        self.aggregator.update_weights(ScoringWeights(**merged))

        if self.cache:
            await self.cache.clear_layer(CacheLayer.SCORE)

        logger.info(f"Scoring weights updated: {merged}")
        return self.weights

    def relevant(self, batch: BatchScoringResult, threshold: Optional[float] = None) -> List[str]:
        """Ids of opportunities scoring at least threshold, best first."""
        cutoff = self.min_relevance_threshold if threshold is None else threshold
        ranked = sorted(batch.scores.items(), key=lambda item: item[1], reverse=True)
        return [opportunity_id for opportunity_id, score in ranked if score >= cutoff]

    def apply_scores(
        self,
        opportunities: Sequence[Opportunity],
        batch: BatchScoringResult,
    ) -> List[Opportunity]:
        """Copies of the scored opportunities with the write-back fields filled in."""
        by_id = {r.opportunity_id: r for r in batch.detailed}
        updated = []
        for opportunity in opportunities:
            result = by_id.get(opportunity.id)
            if result is None:
                updated.append(opportunity)
                continue
            updated.append(opportunity.model_copy(update={
                "relevance_score": result.overall_score,
                "component_scores": result.component_scores.model_dump(),
                "ai_service_used": batch.ai_service_used,
            }))
        return updated

    async def clear_cache(self) -> int:
        if not self.cache:
            return 0
        return await self.cache.clear_layer(CacheLayer.SCORE)

    def health_check(self) -> Dict[str, bool]:
        status = {}
        for scorer in self.scorers:
            try:
                status[scorer.name] = bool(scorer.health_check())
            except Exception as e:
                logger.error(f"{scorer.name} scorer health check failed: {e}")
                status[scorer.name] = False
        status["aggregator"] = self.aggregator.health_check()
        return status
