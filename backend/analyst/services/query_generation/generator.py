"""
Query Generator - Profile to Ranked Search Queries

Orchestrates the query pipeline:

    profile → ProfileAnalyzer → ContextBuilder
            → per source: basic templates (40%) + semantic templates (60%)
            → QueryOptimizer (rank, dedup, truncate)

Per-source quota:
    q = min(max_queries or max_queries_per_source, max_queries_per_source)

Every requested source contributes at least one candidate: a source whose
templates produce nothing gets the generic fallback pair. Every requested
source also keeps at least one query after de-duplication.

Results are cached in the query layer keyed by a content hash of the
profile fields that influence generation plus the resolved sources and
max_queries.

Usage:
    generator = QueryGenerator(completion=get_completion_service(), cache=create_cache())
    await generator.initialize()
    queries = await generator.generate(profile, priority="high")
"""

import logging
import math
import time
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from analyst.config import Settings, get_settings
from analyst.exceptions import AnalystError, ConfigurationError, UpstreamServiceError, ValidationError
from analyst.schemas.profile import ArtistProfile, ProfileAnalysis
from analyst.schemas.query import (
    AIContext,
    GeneratedQuery,
    Priority,
    QueryGenerationRequest,
    QueryGenerationResult,
    SourceType,
)
from analyst.services.cache import AnalysisCache, CacheLayer, hash_content
from analyst.services.completion import CompletionService
from analyst.services.profile_analyzer import ProfileAnalyzer
from analyst.services.query_generation.context_builder import ContextBuilder
from analyst.services.query_generation.optimizer import QueryOptimizer
from analyst.services.query_generation.templates import (
    SemanticQueryTemplate,
    basic_queries,
    fallback_queries,
    local_semantic_queries,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCES: Dict[str, List[SourceType]] = {
    "high": ["websearch", "social", "bookmark", "newsletter"],
    "medium": ["websearch", "social", "bookmark"],
    "low": ["websearch", "bookmark"],
}

BASIC_SHARE = 0.4
SEMANTIC_SHARE = 0.6

HEALTH_CHECK_PROFILE = ArtistProfile(
    id="health-check",
    name="Test Artist",
    mediums=["painting"],
    skills=["oil painting"],
    interests=["contemporary art"],
    experience="intermediate",
    location="New York, NY",
)


def default_sources(priority: Optional[str]) -> List[SourceType]:
    """Sources searched when the caller does not name any."""
    return list(DEFAULT_SOURCES.get(priority or "low", DEFAULT_SOURCES["low"]))


class QueryGenerator:
    """
    Generates ranked search queries for an artist profile.

    Attributes:
        completion: Completion service used by the semantic template
        cache: Analysis cache (query layer), or None to disable caching
        max_queries_per_source: Per-source quota ceiling
        use_semantic_enhancement: Whether semantic templates run at all
    """

    def __init__(
        self,
        completion: CompletionService,
        cache: Optional[AnalysisCache] = None,
        settings: Optional[Settings] = None,
        analyzer: Optional[ProfileAnalyzer] = None,
    ):
        settings = settings or get_settings()
        self.completion = completion
        self.cache = cache if settings.cache_results else None
        self.max_queries_per_source = settings.max_queries_per_source
        self.use_semantic_enhancement = settings.use_semantic_enhancement

        self.analyzer = analyzer or ProfileAnalyzer()
        self.context_builder = ContextBuilder(max_prompt_length=settings.max_prompt_length)
        self.semantic_template = SemanticQueryTemplate(
            completion, timeout_seconds=settings.completion_timeout_seconds
        )
        self.optimizer = QueryOptimizer()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return
        logger.info(f"Query generator initialized (completion provider: {self.completion.provider_id})")
        self._initialized = True

    async def shutdown(self) -> None:
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise ConfigurationError(
                "QueryGenerator is not initialized",
                {"operation": "query-generation"},
            )

    async def generate(
        self,
        profile: ArtistProfile,
        sources: Optional[List[SourceType]] = None,
        max_queries: Optional[int] = None,
        priority: Priority = "medium",
    ) -> List[str]:
        """
        Generate search query strings for a profile.

        Args:
            profile: Artist profile
            sources: Discovery sources to target (defaults depend on priority)
            max_queries: Cap on the returned list and on each source's quota
            priority: Chooses the default sources when none are given

        Returns:
            Query strings, highest ranked first

        Raises:
            ConfigurationError: If the generator has not been initialized
            ValidationError: If sources or max_queries are malformed
        """
        try:
            request = QueryGenerationRequest(
                profile=profile,
                sources=sources,
                max_queries=max_queries,
                priority=priority,
            )
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic("Invalid query generation request", e) from e

        result = await self.generate_with_metadata(request)
        return [q.text for q in result.queries]

    def cache_key(
        self,
        profile: ArtistProfile,
        sources: List[SourceType],
        max_queries: Optional[int],
    ) -> str:
        # bio and artist_statement are left out, so profiles differing only there share entries
        return hash_content(
            sorted(profile.mediums),
            sorted(profile.skills),
            sorted(profile.interests),
            profile.experience or "",
            profile.location or "",
            sorted(sources),
            max_queries,
        )

    async def generate_with_metadata(self, request: QueryGenerationRequest) -> QueryGenerationResult:
        self._ensure_initialized()
        start_time = time.perf_counter()

        profile = request.profile
        sources = list(request.sources) if request.sources else default_sources(request.priority)
        key = self.cache_key(profile, sources, request.max_queries)

        if self.cache:
            cached = await self.cache.get_queries(key)
            if cached is not None:
                result = QueryGenerationResult.model_validate(cached)
                result.cache_hit = True
                return result

        try:
            analysis = self.analyzer.analyze(profile)
            context = self.context_builder.build(profile, analysis)

            quota = min(request.max_queries or self.max_queries_per_source, self.max_queries_per_source)
            candidates: List[GeneratedQuery] = []
            distribution: Dict[str, int] = {}

            for source in sources:
                source_queries = await self._generate_for_source(source, analysis, context, quota)
                candidates.extend(source_queries)
                distribution[source] = len(source_queries)

            queries = self.optimizer.optimize_for_sources(candidates, sources, request.max_queries)
        except AnalystError:
            raise
        except Exception as e:
            logger.error(f"Query generation failed for profile {profile.id}: {e}")
            raise UpstreamServiceError(
                f"Query generation failed: {e}",
                self.completion.provider_id,
                "query-generation",
                {"profile_id": profile.id},
            ) from e

        result = QueryGenerationResult(
            queries=queries,
            source_distribution=distribution,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
            ai_service_used=self.completion.provider_id,
            cache_hit=False,
        )

        if self.cache:
            await self.cache.set_queries(key, result.model_dump(mode="json"))

        logger.info(
            f"Generated {len(queries)} queries for profile {profile.id} "
            f"across {len(sources)} sources in {result.processing_time_ms:.1f}ms"
        )
        return result

    async def _generate_for_source(
        self,
        source: SourceType,
        analysis: ProfileAnalysis,
        context: AIContext,
        quota: int,
    ) -> List[GeneratedQuery]:
        queries = basic_queries(analysis, source, math.ceil(quota * BASIC_SHARE))

        if self.use_semantic_enhancement:
            queries.extend(await self.semantic_template.generate(
                context, source, math.ceil(quota * SEMANTIC_SHARE)
            ))

        queries = queries[:quota]
        if not queries:
            logger.warning(f"No template queries for source {source}, using fallback pair")
            queries = fallback_queries(source, quota)
        return queries

    async def clear_cache(self) -> int:
        if not self.cache:
            return 0
        return await self.cache.clear_layer(CacheLayer.QUERY)

    def health_check(self) -> Dict[str, bool]:
        """
        Exercise each pipeline stage on a fixed synthetic profile.

        The semantic template is checked through its local templates so a
        health probe never spends a completion call.
        """
        status = {
            "profile_analyzer": False,
            "context_builder": False,
            "basic_template": False,
            "semantic_template": False,
            "optimizer": False,
        }

        try:
            analysis = self.analyzer.analyze(HEALTH_CHECK_PROFILE)
            status["profile_analyzer"] = bool(analysis.primary_mediums)

            context = self.context_builder.build(HEALTH_CHECK_PROFILE, analysis)
            status["context_builder"] = bool(context.user_prompt and context.system_prompt)

            basic = basic_queries(analysis, "websearch", 2)
            status["basic_template"] = len(basic) > 0

            semantic = local_semantic_queries(analysis, "websearch", 3)
            status["semantic_template"] = self.completion is not None and len(semantic) > 0

            status["optimizer"] = len(self.optimizer.optimize(basic + semantic + basic, 3)) > 0
        except Exception as e:
            logger.error(f"Query generator health check failed: {e}")

        return status
