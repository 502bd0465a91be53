"""
Query Templates - Candidate Search Queries per Discovery Source

Three tiers, from most to least specific:

    | Tier                  | Source of text             | Priority | Expected results |
    |-----------------------|----------------------------|----------|------------------|
    | Semantic (AI)         | CompletionService          | 10       | 30               |
    | Semantic (local)      | fixed phrase templates     | 9        | 25               |
    | Basic                 | analysis interpolation     | 9 → 6    | 25 → 10          |
    | Fallback pair         | generic constants          | 5        | 15 / 12          |

The AI tier degrades to the local tier on any failure, timeout or empty
answer, so semantic generation never raises.
"""

import asyncio
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

from analyst.middleware.metrics import record_fallback
from analyst.schemas.profile import ProfileAnalysis
from analyst.schemas.query import AIContext, GeneratedQuery, SourceType
from analyst.services.completion import CompletionService

logger = logging.getLogger(__name__)

AI_PRIORITY = 10.0
AI_EXPECTED_RESULTS = 30
LOCAL_SEMANTIC_PRIORITY = 9.0
LOCAL_SEMANTIC_EXPECTED_RESULTS = 25
FALLBACK_PRIORITY = 5.0

LOCAL_SEMANTIC_TEMPLATES = [
    "innovative {medium} {opportunity_type} for {experience} artists {year}",
    "{medium} {funding_type} supporting {interest} artistic practice",
    "{experience} {medium} artist {opportunity_type} and fellowships",
    "{interest} focused {medium} {opportunity_type} and exhibitions",
    "professional development {opportunity_type} {medium} artist opportunities",
    "{medium} collaborative {opportunity_type} and artist exchanges",
    "{location} {medium} {opportunity_type} {experience} artists",
    "{opportunity_type} {medium} artists {location} {year}",
    "{experience_keyword} {medium} {opportunity_type} {interest}",
    "{funding_type} {medium} {experience} artist {opportunity_type}",
]

FALLBACK_QUERIES = [
    ("contemporary art grants emerging artists", ["contemporary art"], 15),
    ("artist residency programs creative funding", [], 12),
]

_WHITESPACE = re.compile(r"\s+")


def _current_year(year: Optional[int]) -> int:
    return year if year is not None else date.today().year


def _query(
    text: str,
    source_tag: SourceType,
    priority: float,
    expected: int,
    **context: Any,
) -> GeneratedQuery:
    return GeneratedQuery(
        text=_WHITESPACE.sub(" ", text).strip(),
        source_tag=source_tag,
        priority=priority,
        context={k: v for k, v in context.items() if v is not None},
        expected_result_count=expected,
    )


def basic_queries(
    analysis: ProfileAnalysis,
    source_tag: SourceType,
    max_queries: int,
    year: Optional[int] = None,
) -> List[GeneratedQuery]:
    """
    Deterministic queries interpolated from the profile analysis.

    Args:
        analysis: Profile analysis to interpolate
        source_tag: Discovery source the queries target
        max_queries: Maximum number of queries to return
        year: Year to mention (defaults to the current year)
    """
    year = _current_year(year)
    mediums = analysis.primary_mediums
    types = analysis.opportunity_types
    interests = analysis.primary_interests
    experience = analysis.experience_level
    city = analysis.geographic_scope.city
    top_type = types[0] if types else "opportunities"

    queries: List[GeneratedQuery] = []

    for opportunity_type in types[:3]:
        for medium in mediums[:2]:
            queries.append(_query(
                f"{medium} {opportunity_type} {year}", source_tag, 9, 25,
                artist_mediums=[medium], opportunity_type=opportunity_type,
            ))

    for funding_type in analysis.funding_preferences[:2]:
        for medium in mediums[:1]:
            queries.append(_query(
                f"{medium} {funding_type} {experience.category}", source_tag, 8, 20,
                artist_mediums=[medium], funding_type=funding_type,
            ))

    for medium in mediums[:2]:
        queries.append(_query(
            f"{medium} {top_type} call for artists", source_tag, 7, 18,
            artist_mediums=[medium], opportunity_type=top_type,
        ))

    for keyword in experience.keywords[:1]:
        queries.append(_query(
            f"{keyword} artist {top_type} {mediums[0] if mediums else 'art'}", source_tag, 7, 15,
            artist_mediums=mediums, experience_level=experience.category, keyword=keyword,
        ))

    if city and types:
        queries.append(_query(
            f"{types[0]} {city} {mediums[0] if mediums else 'artists'}", source_tag, 6, 12,
            artist_mediums=mediums, location=city, opportunity_type=types[0],
        ))

    if interests and types:
        interest_type = types[1] if len(types) > 1 else types[0]
        queries.append(_query(
            f"{interests[0]} {interest_type} {mediums[0] if mediums else 'art'}", source_tag, 6, 10,
            artist_mediums=mediums, interests=interests, opportunity_type=interest_type,
        ))

    return queries[:max_queries]


def local_semantic_queries(
    analysis: ProfileAnalysis,
    source_tag: SourceType,
    max_queries: int,
    year: Optional[int] = None,
) -> List[GeneratedQuery]:
    """Phrase-template queries used when the completion service is unavailable."""
    experience = analysis.experience_level.category
    types = analysis.opportunity_types
    values: Dict[str, str] = {
        "medium": analysis.primary_mediums[0] if analysis.primary_mediums else "contemporary art",
        "experience": experience,
        "interest": analysis.primary_interests[0] if analysis.primary_interests else "artistic practice",
        "funding_type": analysis.funding_preferences[0] if analysis.funding_preferences else "funding",
        "location": analysis.geographic_scope.city or analysis.geographic_scope.state or "",
        "experience_keyword": (analysis.experience_level.keywords or [experience])[0],
        "year": str(_current_year(year)),
    }
    primary_type = types[0] if types else "opportunities"
    secondary_type = types[1] if len(types) > 1 else "grant"

    queries = []
    for i, template in enumerate(LOCAL_SEMANTIC_TEMPLATES[:max_queries]):
        opportunity_type = primary_type if i % 2 == 0 else secondary_type
        text = template.format(opportunity_type=opportunity_type, **values)
        queries.append(_query(
            text, source_tag, LOCAL_SEMANTIC_PRIORITY, LOCAL_SEMANTIC_EXPECTED_RESULTS,
            artist_mediums=analysis.primary_mediums,
            interests=analysis.primary_interests,
            opportunity_type=opportunity_type,
            experience_level=experience,
            location=values["location"] or None,
        ))
    return queries


def fallback_queries(source_tag: SourceType, max_queries: int = 2) -> List[GeneratedQuery]:
    """The generic pair used when a source produced no candidates at all."""
    return [
        _query(text, source_tag, FALLBACK_PRIORITY, expected, artist_mediums=mediums)
        for text, mediums, expected in FALLBACK_QUERIES
    ][:max(1, max_queries)]


class SemanticQueryTemplate:
    """
    AI-assisted query template.

    Attributes:
        completion: Completion service asked for query text
        timeout_seconds: Upper bound for one completion call
    """

    def __init__(self, completion: CompletionService, timeout_seconds: float = 30.0):
        self.completion = completion
        self.timeout_seconds = timeout_seconds

    async def generate(
        self,
        context: AIContext,
        source_tag: SourceType,
        max_queries: int,
        year: Optional[int] = None,
    ) -> List[GeneratedQuery]:
        analysis = context.profile_analysis
        try:
            texts = await asyncio.wait_for(
                self.completion.complete_queries(context, max_queries),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Semantic query generation timed out after {self.timeout_seconds}s "
                f"for {source_tag}, using local templates"
            )
            texts = []
        except Exception as e:
            logger.warning(f"Semantic query generation failed for {source_tag}, using local templates: {e}")
            texts = []

        texts = [t.strip() for t in texts if t and t.strip()]
        if not texts:
            record_fallback("query_templates")
            return local_semantic_queries(analysis, source_tag, max_queries, year)

        types = analysis.opportunity_types
        return [
            _query(
                text, source_tag, AI_PRIORITY, AI_EXPECTED_RESULTS,
                artist_mediums=analysis.primary_mediums,
                interests=analysis.primary_interests,
                opportunity_type=types[i % len(types)] if types else None,
                experience_level=analysis.experience_level.category,
                ai_generated=True,
            )
            for i, text in enumerate(texts[:max_queries])
        ]
