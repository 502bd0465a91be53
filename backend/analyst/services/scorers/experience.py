"""
Experience scorer: does the opportunity's target level suit the artist?

The profile (experience, bio, statement) is classified as advanced,
beginner or intermediate; the opportunity (title, description, tags) as
advanced, beginner or any. A side matching both keyword sets is treated
as its default (intermediate / any).

Scores:
    opportunity open to any level → 0.8
    same level                    → 1.0
    intermediate artist           → 0.7
    otherwise                     → 0.4
"""

from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile

ADVANCED_KEYWORDS = (
    "advanced", "professional", "established", "exhibited", "experienced",
    "expert", "mid-career", "mid career", "senior", "master",
)

BEGINNER_KEYWORDS = (
    "beginner", "emerging", "student", "novice", "early career",
    "early-career", "first-time", "first time", "recent graduate",
)

ALL_LEVELS_PHRASES = (
    "all levels", "all experience levels", "any level", "open to all",
    "all career stages",
)


def _mentions(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


def classify_profile(profile: ArtistProfile) -> str:
    text = " ".join(t for t in (profile.experience, profile.bio, profile.artist_statement) if t).lower()
    advanced = _mentions(text, ADVANCED_KEYWORDS)
    beginner = _mentions(text, BEGINNER_KEYWORDS)

    if advanced and not beginner:
        return "advanced"
    if beginner and not advanced:
        return "beginner"
    return "intermediate"


def classify_opportunity(opportunity: Opportunity) -> str:
    text = " ".join([opportunity.title, opportunity.description, *opportunity.tags]).lower()
    if _mentions(text, ALL_LEVELS_PHRASES):
        return "any"

    advanced = _mentions(text, ADVANCED_KEYWORDS)
    beginner = _mentions(text, BEGINNER_KEYWORDS)

    if advanced and not beginner:
        return "advanced"
    if beginner and not advanced:
        return "beginner"
    return "any"


def experience_score(profile_level: str, opportunity_level: str) -> float:
    if opportunity_level == "any":
        return 0.8
    if profile_level == opportunity_level:
        return 1.0
    if profile_level == "intermediate":
        return 0.7
    return 0.4


class ExperienceScorer:
    name = "experience"

    async def score(self, profile: ArtistProfile, opportunity: Opportunity) -> float:
        return experience_score(classify_profile(profile), classify_opportunity(opportunity))

    def health_check(self) -> bool:
        return experience_score("advanced", "advanced") == 1.0
