"""
Profile Analyzer - Deterministic Artist Profile Analysis

Turns an ArtistProfile into a ProfileAnalysis: normalised mediums and
their aliases, categorised skills, interest clusters, geography,
experience level and the derived keyword/opportunity-type/funding lists
that drive query generation and relevance scoring.

The analysis is a pure function of the profile text: no I/O, no clock,
no randomness. Calling analyze() twice on the same profile returns equal
results.

Usage:
    from analyst.services.profile_analyzer import ProfileAnalyzer

    analysis = ProfileAnalyzer().analyze(profile)
    analysis.primary_mediums       # ['painting', 'sculpture']
    analysis.experience_level      # ExperienceLevel(category='professional', ...)
"""

import re
from typing import Dict, List, Optional, Tuple

from analyst.schemas.profile import (
    ArtistProfile,
    ExperienceLevel,
    GeographicScope,
    ProfileAnalysis,
)

MAX_PRIMARY_MEDIUMS = 3
MAX_SECONDARY_MEDIUMS = 5
MAX_CORE_SKILLS = 6
MAX_SUPPORTING_SKILLS = 4
MAX_INTERESTS = 5
MAX_SEARCHABLE_KEYWORDS = 20
MAX_OPPORTUNITY_TYPES = 6
MAX_FUNDING_PREFERENCES = 4

# Medium -> related terms used as secondary mediums
MEDIUM_ALIASES: Dict[str, List[str]] = {
    "painting": ["oil painting", "acrylic", "watercolor", "mixed media painting", "abstract painting"],
    "digital art": ["digital painting", "concept art", "illustration", "graphic design"],
    "sculpture": ["clay", "metal sculpture", "stone carving", "installation art"],
    "photography": ["fine art photography", "documentary", "portrait photography", "commercial photography"],
    "textile art": ["fiber art", "weaving", "embroidery", "fashion design", "quilting"],
    "new media art": ["video art", "interactive art", "sound art", "performance art"],
    "printmaking": ["etching", "lithography", "screen printing", "woodcut", "linocut"],
    "ceramics": ["pottery", "ceramic sculpture", "functional ceramics", "raku"],
    "drawing": ["charcoal", "pastel", "ink", "graphite", "colored pencil"],
    "jewelry": ["metalsmithing", "beadwork", "enamel", "stone setting"],
}

# Declaration order matters: a skill lands in the first matching category
SKILL_CATEGORIES: Dict[str, List[str]] = {
    "technical": ["color theory", "composition", "perspective", "anatomy", "lighting"],
    "business": ["marketing", "networking", "grant writing", "exhibition planning", "teaching"],
    "digital": ["photoshop", "illustrator", "procreate", "blender", "3d modeling", "video editing"],
    "traditional": ["oil painting", "watercolor", "drawing", "printmaking", "sculpture"],
}

INTEREST_GROUPS: Dict[str, List[str]] = {
    "contemporary art": ["contemporary", "modern", "current", "new"],
    "traditional art": ["traditional", "classical", "historic", "heritage"],
    "abstract art": ["abstract", "non-representational", "conceptual"],
    "figurative art": ["figurative", "representational", "realistic", "portrait"],
    "environmental art": ["environmental", "nature", "landscape", "eco"],
    "social art": ["social", "community", "political", "activism", "justice"],
    "experimental art": ["experimental", "innovative", "cutting-edge", "avant-garde"],
}

# Ordered most senior first; on equal hit counts the earlier level wins
EXPERIENCE_INDICATORS: Dict[str, List[str]] = {
    "professional": [
        "professional", "career", "established", "exhibited", "represented",
        "gallery", "museum", "sold work", "commission", "full-time",
    ],
    "advanced": [
        "advanced", "expert", "experienced", "skilled", "mastered",
        "teaching", "mentor", "years of", "decade",
    ],
    "intermediate": [
        "intermediate", "developing", "improving", "learning", "growing",
        "some experience", "few years",
    ],
    "beginner": [
        "beginner", "new to", "starting", "just beginning", "first time",
        "learning basics", "recently started",
    ],
}

US_REGIONS: Dict[str, List[str]] = {
    "Northeast": ["ny", "nj", "pa", "ct", "ma", "ri", "vt", "nh", "me"],
    "Southeast": ["fl", "ga", "sc", "nc", "va", "wv", "ky", "tn", "al", "ms", "ar", "la"],
    "Midwest": ["oh", "in", "il", "mi", "wi", "mn", "ia", "mo", "nd", "sd", "ne", "ks"],
    "Southwest": ["tx", "ok", "nm", "az"],
    "West": ["ca", "nv", "or", "wa", "id", "mt", "wy", "co", "ut", "ak", "hi"],
}

UNITED_STATES = "united states"

OPPORTUNITY_TYPES_BY_LEVEL: Dict[str, List[str]] = {
    "beginner": ["workshop", "class", "mentorship", "emerging artist"],
    "intermediate": ["grant", "residency", "exhibition", "competition"],
    "advanced": ["commission", "fellowship", "solo exhibition", "teaching opportunity"],
    "professional": ["commission", "fellowship", "solo exhibition", "teaching opportunity"],
}

FUNDING_BY_LEVEL: Dict[str, List[str]] = {
    "beginner": ["small grants", "local funding", "community support"],
    "intermediate": ["mid-level grants", "state funding", "foundation grants"],
    "advanced": ["major grants", "federal funding", "international funding"],
    "professional": ["major grants", "federal funding", "international funding"],
}

_YEARS_PATTERN = re.compile(r"(\d+)\s*(?:year|yr)")


def _normalize(values: List[str]) -> List[str]:
    return [v.lower().strip() for v in values]


def _unique(values: List[str]) -> List[str]:
    """De-duplicate preserving first-seen order."""
    return list(dict.fromkeys(values))


def get_us_region(state: str) -> str:
    """Map a two-letter US state code to its census-style region."""
    state_code = state.lower()
    for region, states in US_REGIONS.items():
        if state_code in states:
            return region
    return "Unknown"


def parse_location(location: Optional[str]) -> GeographicScope:
    """
    Parse a free-text "city, state[, country]" location.

    Two-part locations with a short (≤3 char) second part are assumed to be
    US "city, ST" and get a region. All values are lower-cased.

    Example:
        >>> parse_location("Portland, OR")
        GeographicScope(city='portland', state='or', country='united states', region='West', ...)
    """
    if not location or not location.strip():
        return GeographicScope()

    parts = [p.strip() for p in location.lower().strip().split(",")]

    city = parts[0] if parts else None
    state = parts[1] if len(parts) >= 2 else None
    country: Optional[str] = None

    if len(parts) >= 3:
        country = parts[2]
    elif len(parts) == 2 and len(parts[1]) <= 3:
        country = UNITED_STATES

    region = None
    if country == UNITED_STATES and state:
        region = get_us_region(state)

    return GeographicScope(
        city=city or None,
        state=state or None,
        country=country or None,
        region=region,
        is_remote_eligible=True,
    )


class ProfileAnalyzer:
    """
    Extracts structured, searchable signals from an artist profile.

    Stateless; one instance can be shared across requests.
    """

    def analyze(self, profile: ArtistProfile) -> ProfileAnalysis:
        """
        Analyze a profile.

        Args:
            profile: Artist profile to analyze

        Returns:
            ProfileAnalysis. exclude_keywords is always empty.
        """
        primary_mediums, secondary_mediums = self.analyze_mediums(profile.mediums)
        core_skills, supporting_skills = self.analyze_skills(profile.skills)
        interests = self.analyze_interests(profile.interests)
        geographic_scope = parse_location(profile.location)
        experience_level = self.analyze_experience_level(
            profile.experience, profile.bio, profile.artist_statement
        )

        analysis = ProfileAnalysis(
            primary_mediums=primary_mediums,
            secondary_mediums=secondary_mediums,
            core_skills=core_skills,
            supporting_skills=supporting_skills,
            primary_interests=interests,
            geographic_scope=geographic_scope,
            experience_level=experience_level,
        )
        analysis.searchable_keywords = self.searchable_keywords(analysis)
        analysis.opportunity_types = self.opportunity_types(analysis)
        analysis.funding_preferences = self.funding_preferences(analysis)
        return analysis

    def analyze_mediums(self, mediums: List[str]) -> Tuple[List[str], List[str]]:
        primary = _normalize(mediums)[:MAX_PRIMARY_MEDIUMS]

        secondary: List[str] = []
        for medium in primary:
            for alias in MEDIUM_ALIASES.get(medium, []):
                if alias.lower() not in primary:
                    secondary.append(alias)

        return primary, secondary[:MAX_SECONDARY_MEDIUMS]

    def analyze_skills(self, skills: List[str]) -> Tuple[List[str], List[str]]:
        categorized: Dict[str, List[str]] = {name: [] for name in SKILL_CATEGORIES}

        for skill in _normalize(skills):
            if not skill:
                continue
            for category, vocabulary in SKILL_CATEGORIES.items():
                if any(term in skill or skill in term for term in vocabulary):
                    categorized[category].append(skill)
                    break

        core = (categorized["technical"] + categorized["traditional"])[:MAX_CORE_SKILLS]
        supporting = (categorized["business"] + categorized["digital"])[:MAX_SUPPORTING_SKILLS]
        return core, supporting

    def analyze_interests(self, interests: List[str]) -> List[str]:
        groups: List[str] = []
        for interest in _normalize(interests):
            for group, keywords in INTEREST_GROUPS.items():
                if any(keyword in interest for keyword in keywords):
                    groups.append(group)
                    break
        return _unique(groups)[:MAX_INTERESTS]

    def analyze_experience_level(
        self,
        experience: Optional[str],
        bio: Optional[str],
        artist_statement: Optional[str],
    ) -> ExperienceLevel:
        """
        Classify experience by keyword hits across experience, bio and statement.

        The level with the most hits wins; ties go to the more senior
        level and zero hits means intermediate. years_estimate is the
        largest "<N> years"/"<N> yrs" figure mentioned.
        """
        text = " ".join(t for t in (experience, bio, artist_statement) if t).lower()

        best_score = 0
        category = "intermediate"
        found_keywords: List[str] = []

        for level, keywords in EXPERIENCE_INDICATORS.items():
            hits = [k for k in keywords if k in text]
            found_keywords.extend(hits)
            if len(hits) > best_score:
                best_score = len(hits)
                category = level

        years = [int(m) for m in _YEARS_PATTERN.findall(text)]

        return ExperienceLevel(
            category=category,
            years_estimate=max(years) if years else None,
            keywords=found_keywords,
        )

    def searchable_keywords(self, analysis: ProfileAnalysis) -> List[str]:
        scope = analysis.geographic_scope
        keywords = (
            analysis.primary_mediums
            + analysis.secondary_mediums
            + analysis.core_skills
            + analysis.supporting_skills
            + analysis.primary_interests
            + [analysis.experience_level.category]
            + analysis.experience_level.keywords
            + [v for v in (scope.city, scope.state, scope.country) if v]
        )
        return _unique(keywords)[:MAX_SEARCHABLE_KEYWORDS]

    def opportunity_types(self, analysis: ProfileAnalysis) -> List[str]:
        types = list(OPPORTUNITY_TYPES_BY_LEVEL[analysis.experience_level.category])

        mediums = analysis.primary_mediums
        if any(m in ("digital art", "new media art") for m in mediums):
            types.extend(["digital art", "new media"])
        if any(m in ("painting", "drawing", "printmaking") for m in mediums):
            types.extend(["traditional media", "fine art"])

        return types[:MAX_OPPORTUNITY_TYPES]

    def funding_preferences(self, analysis: ProfileAnalysis) -> List[str]:
        preferences = list(FUNDING_BY_LEVEL[analysis.experience_level.category])

        if "social art" in analysis.primary_interests:
            preferences.append("social impact funding")
        if "environmental art" in analysis.primary_interests:
            preferences.append("environmental funding")

        return preferences[:MAX_FUNDING_PREFERENCES]
