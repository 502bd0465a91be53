"""
Keyword Scorer - Weighted Whole-Word Matching

Profile keywords are bucketed by where they came from and each bucket
carries an importance weight; each opportunity field carries its own
weight. A hit contributes category_weight × field_weight × occurrences.

Weights:
    | Profile category | Weight |   | Opportunity field | Weight |
    |------------------|--------|---|-------------------|--------|
    | medium           | 3.0    |   | title             | 3.0    |
    | skill            | 2.5    |   | tags              | 2.5    |
    | interest         | 2.0    |   | organization      | 2.0    |
    | experience       | 1.8    |   | description       | 1.0    |
    | location         | 1.5    |   | location          | 0.8    |
    | general          | 1.0    |   | amount            | 0.5    |

Normalisation:
    score = clamp(tanh(weighted / 10) + min(0.2, 0.02 × total_matches))
    and 0 when nothing matched.

Complexity: O(k × f × n) for k profile keywords, f fields, n field length.
"""

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List

from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile
from analyst.services.scorers.base import clamp

KEYWORD_WEIGHTS: Dict[str, float] = {
    "medium": 3.0,
    "skill": 2.5,
    "interest": 2.0,
    "experience": 1.8,
    "location": 1.5,
    "general": 1.0,
}

FIELD_WEIGHTS: Dict[str, float] = {
    "title": 3.0,
    "tags": 2.5,
    "organization": 2.0,
    "description": 1.0,
    "location": 0.8,
    "amount": 0.5,
}

STOP_WORDS = frozenset([
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "from", "about", "into", "through", "during", "before", "after",
    "above", "below", "up", "down", "out", "off", "over", "under", "again",
    "further", "then", "once", "here", "there", "when", "where", "why",
    "how", "all", "any", "both", "each", "few", "more", "most", "other",
    "some", "such", "no", "nor", "not", "only", "own", "same", "so",
    "than", "too", "very", "can", "will", "just", "should", "now",
])

# First matching suffix wins
STEM_SUFFIXES = (
    "ing", "ed", "er", "est", "ly", "ion", "tion", "sion",
    "ness", "ment", "able", "ible", "s",
)

MIN_KEYWORD_LENGTH = 3
GENERAL_KEYWORD_LIMIT = 10

_WORD = re.compile(r"\b\w+\b")


@lru_cache(maxsize=4096)
def stem_word(word: str) -> str:
    """
    Strip the first matching suffix if at least three characters remain.

    Example:
        >>> stem_word("painting")
        'paint'
        >>> stem_word("sing")
        'sing'
    """
    stemmed = word.lower()
    for suffix in STEM_SUFFIXES:
        if stemmed.endswith(suffix) and len(stemmed) > len(suffix) + 2:
            return stemmed[: -len(suffix)]
    return stemmed


def extract_words(text: str) -> List[str]:
    return _WORD.findall(text)


def process_keywords(values: List[str]) -> List[str]:
    """Tokenise, lower-case, stem and filter a list of profile phrases."""
    words = [stem_word(w.lower()) for value in values for w in extract_words(value)]
    return [w for w in words if w not in STOP_WORDS and len(w) >= MIN_KEYWORD_LENGTH]


def count_occurrences(keyword: str, text: str) -> int:
    """Count whole-word, case-insensitive occurrences of keyword in text."""
    if not keyword or not text:
        return 0
    pattern = re.compile(rf"\b{re.escape(keyword.lower())}\b")
    return len(pattern.findall(text.lower()))


@dataclass
class KeywordMatch:
    """
    One keyword found in one opportunity field.

    Attributes:
        word: Profile keyword (stemmed)
        weight: category_weight × field_weight × occurrences
        occurrences: Whole-word hits in the field
        field: Opportunity field name
    """
    word: str
    weight: float
    occurrences: int
    field: str


@dataclass
class KeywordAnalysis:
    matches: List[KeywordMatch] = field(default_factory=list)
    total_matches: int = 0
    weighted_score: float = 0.0
    coverage: float = 0.0

    def top_matches(self, limit: int = 10) -> List[KeywordMatch]:
        return sorted(self.matches, key=lambda m: m.weight, reverse=True)[:limit]

    def stats(self) -> Dict[str, object]:
        field_distribution: Dict[str, int] = {}
        for match in self.matches:
            field_distribution[match.field] = field_distribution.get(match.field, 0) + 1

        average_weight = (
            sum(m.weight for m in self.matches) / len(self.matches) if self.matches else 0.0
        )
        return {
            "unique_matches": len({m.word for m in self.matches}),
            "average_weight": average_weight,
            "field_distribution": field_distribution,
        }


def normalize_keyword_score(weighted_score: float, total_matches: int) -> float:
    if total_matches == 0:
        return 0.0
    score = math.tanh(weighted_score / 10)
    score += min(0.2, total_matches * 0.02)
    return clamp(score)


class KeywordScorer:
    """Weighted keyword matching between profile vocabulary and opportunity fields."""

    name = "keyword"

    def profile_keywords(self, profile: ArtistProfile) -> Dict[str, List[str]]:
        keywords: Dict[str, List[str]] = {
            "medium": process_keywords(profile.mediums),
            "skill": process_keywords(profile.skills),
            "interest": process_keywords(profile.interests),
            "experience": process_keywords([profile.experience]) if profile.experience else [],
            "location": process_keywords([profile.location]) if profile.location else [],
            "general": [],
        }

        bio_text = " ".join(t for t in (profile.bio, profile.artist_statement) if t)
        if bio_text:
            general = [
                w.lower() for w in extract_words(bio_text)
                if len(w) > 3 and w.lower() not in STOP_WORDS
            ]
            keywords["general"] = general[:GENERAL_KEYWORD_LIMIT]

        return keywords

    @staticmethod
    def opportunity_fields(opportunity: Opportunity) -> Dict[str, str]:
        return {
            "title": opportunity.title or "",
            "description": opportunity.description or "",
            "organization": opportunity.organization or "",
            "location": opportunity.location or "",
            "amount": opportunity.amount or "",
            "tags": " ".join(opportunity.tags),
        }

    def analyze(self, profile: ArtistProfile, opportunity: Opportunity) -> KeywordAnalysis:
        profile_keywords = self.profile_keywords(profile)
        fields = self.opportunity_fields(opportunity)
        analysis = KeywordAnalysis()

        for category, keywords in profile_keywords.items():
            category_weight = KEYWORD_WEIGHTS.get(category, 1.0)
            for keyword in keywords:
                for field_name, text in fields.items():
                    occurrences = count_occurrences(keyword, text)
                    if occurrences == 0:
                        continue
                    weight = category_weight * FIELD_WEIGHTS.get(field_name, 1.0) * occurrences
                    analysis.matches.append(KeywordMatch(keyword, weight, occurrences, field_name))
                    analysis.total_matches += occurrences
                    analysis.weighted_score += weight

        total_keywords = sum(len(k) for k in profile_keywords.values())
        matched = len({m.word for m in analysis.matches})
        analysis.coverage = matched / total_keywords if total_keywords else 0.0
        return analysis

    async def score(self, profile: ArtistProfile, opportunity: Opportunity) -> float:
        analysis = self.analyze(profile, opportunity)
        return normalize_keyword_score(analysis.weighted_score, analysis.total_matches)

    def health_check(self) -> bool:
        return len(process_keywords(["painting", "artist", "exhibition"])) > 0
