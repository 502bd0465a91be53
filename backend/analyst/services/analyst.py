"""
Analyst Service - Facade Over Query Generation and Relevance Scoring

The single entry point used by the HTTP layer and by orchestrating
callers. Owns one QueryGenerator and one RelevanceScoringEngine that
share the completion service and the analysis cache.

Usage:
    service = AnalystService.from_settings()
    await service.initialize()

    queries = await service.generate_queries(profile, priority="high")
    batch = await service.score_opportunities(profile, opportunities)

    await service.shutdown()
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from analyst.config import Settings, get_settings
from analyst.exceptions import NotFoundError
from analyst.schemas.profile import ArtistProfile
from analyst.schemas.query import Priority, QueryGenerationRequest, QueryGenerationResult, SourceType
from analyst.schemas.scoring import BatchScoringResult, ScoringResult, ScoringWeights, WeightsUpdate
from analyst.services.cache import AnalysisCache, create_cache
from analyst.services.completion import CompletionService, get_completion_service
from analyst.services.query_generation.generator import QueryGenerator
from analyst.services.relevance import OpportunityInput, RelevanceScoringEngine, coerce_opportunity

logger = logging.getLogger(__name__)


@runtime_checkable
class ProfileRepository(Protocol):
    """Read access to stored artist profiles."""

    async def get_profile(self, profile_id: str) -> Optional[ArtistProfile]:
        ...


class InMemoryProfileRepository:
    """Dict-backed ProfileRepository for tests and single-process deployments."""

    def __init__(self, profiles: Optional[Sequence[ArtistProfile]] = None):
        self._profiles: Dict[str, ArtistProfile] = {p.id: p for p in profiles or []}

    def add(self, profile: ArtistProfile) -> None:
        self._profiles[profile.id] = profile

    async def get_profile(self, profile_id: str) -> Optional[ArtistProfile]:
        return self._profiles.get(profile_id)


class AnalystService:
    """
    Facade for profile analysis, query generation and relevance scoring.

    Attributes:
        generator: Query generator
        engine: Relevance scoring engine
        cache: Shared analysis cache
        profiles: Optional profile repository for the *_for_profile_id variants
    """

    def __init__(
        self,
        completion: CompletionService,
        cache: Optional[AnalysisCache] = None,
        settings: Optional[Settings] = None,
        profiles: Optional[ProfileRepository] = None,
    ):
        settings = settings or get_settings()
        self.completion = completion
        self.cache = cache
        self.profiles = profiles
        self.generator = QueryGenerator(completion, cache=cache, settings=settings)
        self.engine = RelevanceScoringEngine(completion, cache=cache, settings=settings)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        profiles: Optional[ProfileRepository] = None,
    ) -> "AnalystService":
        """
        Build the service with the configured completion provider and cache backend.

        Raises:
            ConfigurationError: If the provider or cache backend is misconfigured
        """
        settings = settings or get_settings()
        return cls(
            completion=get_completion_service(settings),
            cache=create_cache(settings),
            settings=settings,
            profiles=profiles,
        )

    async def initialize(self) -> None:
        await self.generator.initialize()
        await self.engine.initialize()
        logger.info("Analyst service initialized")

    async def shutdown(self) -> None:
        await self.generator.shutdown()
        await self.engine.shutdown()
        if self.cache:
            await self.cache.close()
        logger.info("Analyst service shut down")

    # ==================== Query Generation ====================

    async def generate_queries(
        self,
        profile: ArtistProfile,
        sources: Optional[List[SourceType]] = None,
        max_queries: Optional[int] = None,
        priority: Priority = "medium",
    ) -> List[str]:
        return await self.generator.generate(profile, sources, max_queries, priority)

    async def generate_queries_with_metadata(self, request: QueryGenerationRequest) -> QueryGenerationResult:
        return await self.generator.generate_with_metadata(request)

    async def _require_profile(self, profile_id: str) -> ArtistProfile:
        profile = await self.profiles.get_profile(profile_id) if self.profiles else None
        if profile is None:
            raise NotFoundError("ArtistProfile", profile_id)
        return profile

    async def generate_queries_for_profile_id(
        self,
        profile_id: str,
        sources: Optional[List[SourceType]] = None,
        max_queries: Optional[int] = None,
        priority: Priority = "medium",
    ) -> List[str]:
        """
        Raises:
            NotFoundError: If no profile with this id exists
        """
        profile = await self._require_profile(profile_id)
        return await self.generate_queries(profile, sources, max_queries, priority)

    # ==================== Relevance Scoring ====================

    async def score_opportunity(self, profile: ArtistProfile, opportunity: OpportunityInput) -> ScoringResult:
        """
        Raises:
            ValidationError: If the opportunity payload is malformed
        """
        return await self.engine.score_one(profile, coerce_opportunity(opportunity))

    async def score_opportunities(
        self,
        profile: ArtistProfile,
        opportunities: Sequence[OpportunityInput],
    ) -> BatchScoringResult:
        return await self.engine.score_many(profile, opportunities)

    async def score_opportunities_for_profile_id(
        self,
        profile_id: str,
        opportunities: Sequence[OpportunityInput],
    ) -> BatchScoringResult:
        profile = await self._require_profile(profile_id)
        return await self.score_opportunities(profile, opportunities)

    @property
    def weights(self) -> ScoringWeights:
        return self.engine.weights

    async def update_weights(self, partial: Union[WeightsUpdate, Mapping[str, Any]]) -> ScoringWeights:
        return await self.engine.update_weights(partial)

    # ==================== Health ====================

    async def health(self) -> Dict[str, Dict[str, bool]]:
        cache_ok = await self.cache.health_check() if self.cache else True
        return {
            "query_generation": self.generator.health_check(),
            "relevance_scoring": self.engine.health_check(),
            "infrastructure": {
                "cache": cache_ok,
                "query_generator_initialized": self.generator.initialized,
                "scoring_engine_initialized": self.engine.initialized,
            },
        }
