"""
Semantic Scorer - Embedding Similarity Between Profile and Opportunity

Score pipeline:
    1. Render profile and opportunity as period-separated text
    2. Truncate each to max_text_length (ellipsis marker appended)
    3. Embed both (embedding cache first, completion service on miss)
    4. cosine similarity → (s + 1) / 2 → logistic sharpening, clamped to [0, 1]

Any embedding failure or timeout degrades to a Jaccard overlap between
the profile's mediums/skills/interests and the opportunity's tags and
title/description words. The scorer itself never raises.
"""

import asyncio
import logging
import time
from typing import List, Optional, Set

from analyst.middleware.metrics import record_embedding_latency, record_fallback
from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile
from analyst.services.cache import AnalysisCache, hash_content
from analyst.services.completion import CompletionService
from analyst.services.embeddings import cosine_similarity, sharpen_similarity, truncate_text
from analyst.services.scorers.base import clamp

logger = logging.getLogger(__name__)

EMPTY_OVERLAP_SCORE = 0.1
MIN_OPPORTUNITY_WORD_LENGTH = 3


def profile_text(profile: ArtistProfile) -> str:
    parts = [f"Artist: {profile.name}"]
    if profile.mediums:
        parts.append(f"Mediums: {', '.join(profile.mediums)}")
    if profile.skills:
        parts.append(f"Skills: {', '.join(profile.skills)}")
    if profile.interests:
        parts.append(f"Interests: {', '.join(profile.interests)}")
    if profile.experience:
        parts.append(f"Experience: {profile.experience}")
    if profile.artist_statement:
        parts.append(f"Statement: {profile.artist_statement}")
    if profile.bio:
        parts.append(f"Bio: {profile.bio}")
    return ". ".join(parts)


def opportunity_text(opportunity: Opportunity) -> str:
    parts = [opportunity.title]
    if opportunity.organization:
        parts.append(f"Organization: {opportunity.organization}")
    parts.append(opportunity.description)
    if opportunity.location:
        parts.append(f"Location: {opportunity.location}")
    if opportunity.amount:
        parts.append(f"Amount: {opportunity.amount}")
    if opportunity.tags:
        parts.append(f"Tags: {', '.join(opportunity.tags)}")
    return ". ".join(parts)


def keyword_overlap_score(profile: ArtistProfile, opportunity: Opportunity) -> float:
    """
    Jaccard overlap used when embeddings are unavailable.

    Profile terms are whole mediums/skills/interests; opportunity terms are
    tags plus title and description words longer than three characters.
    Returns 0.1 when both sets are empty.
    """
    profile_words: Set[str] = {
        w.lower() for w in profile.mediums + profile.skills + profile.interests
    }
    candidates: List[str] = (
        [t.lower() for t in opportunity.tags]
        + opportunity.title.lower().split()
        + opportunity.description.lower().split()
    )
    opportunity_words = {w for w in candidates if len(w) > MIN_OPPORTUNITY_WORD_LENGTH}

    union = profile_words | opportunity_words
    if not union:
        return EMPTY_OVERLAP_SCORE
    return len(profile_words & opportunity_words) / len(union)


class SemanticScorer:
    """
    Embedding-based relevance scorer with a keyword-overlap fallback.

    Attributes:
        completion: Completion service providing embeddings
        cache: Analysis cache (embedding layer), or None
        max_text_length: Input length cap before embedding
        timeout_seconds: Upper bound for one embedding call
        enabled: When False every score is 0.0 and no embeddings are requested
    """

    name = "semantic"

    def __init__(
        self,
        completion: CompletionService,
        cache: Optional[AnalysisCache] = None,
        max_text_length: int = 8000,
        timeout_seconds: float = 30.0,
        enabled: bool = True,
    ):
        self.completion = completion
        self.cache = cache
        self.max_text_length = max_text_length
        self.timeout_seconds = timeout_seconds
        self.enabled = enabled

    async def embed(self, text: str) -> List[float]:
        """
        Embed text, truncated to max_text_length, through the embedding cache.

        Raises:
            Whatever the completion service raises, or asyncio.TimeoutError
        """
        truncated = truncate_text(text, self.max_text_length)
        key = hash_content(self.completion.provider_id, truncated)

        if self.cache:
            cached = await self.cache.get_embedding(key)
            if cached is not None:
                return cached

        start = time.perf_counter()
        embedding = await asyncio.wait_for(
            self.completion.embed(truncated),
            timeout=self.timeout_seconds,
        )
        record_embedding_latency(self.completion.provider_id, time.perf_counter() - start)

        if self.cache:
            await self.cache.set_embedding(key, list(embedding))
        return embedding

    async def score(self, profile: ArtistProfile, opportunity: Opportunity) -> float:
        if not self.enabled:
            return 0.0

        try:
            profile_vector, opportunity_vector = await asyncio.gather(
                self.embed(profile_text(profile)),
                self.embed(opportunity_text(opportunity)),
            )
            similarity = cosine_similarity(profile_vector, opportunity_vector)
            return sharpen_similarity(similarity)
        except Exception as e:
            logger.warning(
                f"Semantic scoring failed for opportunity {opportunity.id}, "
                f"using keyword overlap: {type(e).__name__}: {e}"
            )
            record_fallback("semantic")
            return clamp(keyword_overlap_score(profile, opportunity))

    def health_check(self) -> bool:
        return self.completion is not None and self.max_text_length > 0
