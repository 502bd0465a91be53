"""
Context Builder - Prompt Context for AI Query Generation

Assembles the AIContext handed to the completion service: a concise
profile summary, search objectives, contextual hints, constraints and
the system/user prompts. The user prompt is bounded by max_prompt_length;
when it overflows, whole blank-line separated sections are dropped from
the end.
"""

from typing import List

from analyst.schemas.profile import ArtistProfile, ProfileAnalysis
from analyst.schemas.query import AIContext

MAX_OBJECTIVES = 6
STATEMENT_PREVIEW_LENGTH = 200
TRUNCATION_BUFFER = 100
TRUNCATION_NOTICE = "[Additional context truncated for brevity]"

EXPECTED_OUTPUT_FORMAT = (
    "Expected output: 8-12 search queries, one per line, each 5-15 words long, "
    "optimized for discovering art opportunities relevant to the artist's profile."
)

SYSTEM_PROMPT_TEMPLATE = """You are an expert art opportunity researcher specializing in finding relevant grants, exhibitions, residencies, and other professional opportunities for artists.

Your task is to generate targeted search queries that will discover opportunities specifically relevant to the artist's profile, mediums, experience level, and interests.

Key principles:
1. Generate specific, actionable search queries that real search engines can process
2. Balance specificity with breadth to capture relevant opportunities
3. Use professional art world terminology appropriately
4. Consider multiple angles: medium-specific, geographic, experience-appropriate, and interest-based
5. Create queries that would return opportunities from legitimate arts organizations, institutions, and funding bodies

Query characteristics:
- Length: 5-15 words per query
- Specificity: Include medium, location, or opportunity type when relevant
- Variety: Mix different search angles and approaches
- Professionalism: Use terms that arts professionals would use

Focus areas for this artist:
- Primary mediums: {mediums}
- Experience level: {experience}
- Key interests: {interests}"""

USER_PROMPT_TEMPLATE = """Based on the following artist profile, generate search queries to find relevant art opportunities:

ARTIST PROFILE:
{summary}

SEARCH OBJECTIVES:
{objectives}

CONTEXTUAL GUIDANCE:
{hints}

Please generate 8-12 diverse search queries that would effectively discover opportunities for this artist. Each query should be optimized for different search engines and opportunity discovery platforms.

Format: Return only the search queries, one per line, without numbering or additional commentary."""


def truncate_prompt(prompt: str, max_length: int) -> str:
    """
    Bound a prompt by dropping whole sections from the end.

    Sections are separated by blank lines. The first section is always
    kept; later sections are added while the running text stays within
    max_length minus a small buffer, then a truncation notice is appended.
    """
    if len(prompt) <= max_length:
        return prompt

    sections = prompt.split("\n\n")
    truncated = sections[0]

    for section in sections[1:]:
        candidate = f"{truncated}\n\n{section}"
        if len(candidate) > max_length - TRUNCATION_BUFFER:
            truncated += f"\n\n{TRUNCATION_NOTICE}"
            break
        truncated = candidate

    return truncated


class ContextBuilder:
    """
    Builds bounded prompt contexts from a profile and its analysis.

    Attributes:
        max_prompt_length: Upper bound for the user prompt in characters
        include_geographic_info: Whether the summary mentions the artist's city
    """

    def __init__(self, max_prompt_length: int = 4000, include_geographic_info: bool = True):
        self.max_prompt_length = max_prompt_length
        self.include_geographic_info = include_geographic_info

    def build(self, profile: ArtistProfile, analysis: ProfileAnalysis) -> AIContext:
        summary = self.profile_summary(profile, analysis)
        objectives = self.search_objectives(analysis)
        hints = self.contextual_hints(analysis)

        return AIContext(
            system_prompt=self.system_prompt(analysis),
            user_prompt=self.user_prompt(summary, objectives, hints),
            profile_summary=summary,
            search_objectives=objectives,
            contextual_hints=hints,
            constraints=self.constraints(analysis),
            expected_output_format=EXPECTED_OUTPUT_FORMAT,
            profile_analysis=analysis,
        )

    def profile_summary(self, profile: ArtistProfile, analysis: ProfileAnalysis) -> str:
        parts = [f"Artist Name: {profile.name}"]

        if analysis.primary_mediums:
            parts.append(f"Primary Mediums: {', '.join(analysis.primary_mediums)}")

        parts.append(f"Experience Level: {analysis.experience_level.category}")
        if analysis.experience_level.years_estimate:
            parts.append(f"Years of Experience: ~{analysis.experience_level.years_estimate}")

        if analysis.core_skills:
            parts.append(f"Core Skills: {', '.join(analysis.core_skills[:4])}")

        if analysis.primary_interests:
            parts.append(f"Artistic Interests: {', '.join(analysis.primary_interests[:3])}")

        scope = analysis.geographic_scope
        if self.include_geographic_info and scope.city:
            location = f"{scope.city}, {scope.state}" if scope.state else scope.city
            parts.append(f"Location: {location}")

        statement = profile.artist_statement
        if statement:
            preview = statement[:STATEMENT_PREVIEW_LENGTH]
            if len(statement) > STATEMENT_PREVIEW_LENGTH:
                preview += "..."
            parts.append(f"Artist Focus: {preview}")

        return "\n".join(parts)

    def search_objectives(self, analysis: ProfileAnalysis) -> List[str]:
        objectives: List[str] = []

        if analysis.primary_mediums:
            objectives.append(
                f"Find opportunities specifically for {' and '.join(analysis.primary_mediums)} artists"
            )

        category = analysis.experience_level.category
        if category == "beginner":
            objectives.append("Find beginner-friendly opportunities, workshops, and learning experiences")
            objectives.append("Look for mentorship programs and emerging artist supports")
        elif category == "intermediate":
            objectives.append("Find grants, competitions, and exhibition opportunities for developing artists")
            objectives.append("Look for professional development and career advancement opportunities")
        else:
            objectives.append("Find high-level grants, fellowships, and prestigious exhibition opportunities")
            objectives.append("Look for teaching, residency, and leadership opportunities")

        interests = analysis.primary_interests
        if "contemporary art" in interests:
            objectives.append("Focus on contemporary and modern art opportunities")
        if "social art" in interests:
            objectives.append("Include socially engaged and community-based art opportunities")
        if "environmental art" in interests:
            objectives.append("Look for environmental and sustainability-focused art opportunities")

        if analysis.geographic_scope.city:
            objectives.append(
                f"Include both local opportunities in {analysis.geographic_scope.city} area "
                "and remote/online opportunities"
            )

        return objectives[:MAX_OBJECTIVES]

    def contextual_hints(self, analysis: ProfileAnalysis) -> List[str]:
        hints = [
            'Use specific medium names rather than generic "art" terms',
            "Include both traditional and contemporary terminology for mediums",
            "Create queries that balance specificity with broad appeal",
            "Include location modifiers for geographically relevant opportunities",
            "Use funding amount ranges when appropriate",
            "Focus on legitimate, established organizations and institutions",
            "Prioritize opportunities with clear deadlines and application processes",
        ]

        category = analysis.experience_level.category
        if category == "beginner":
            hints.append("Emphasize accessibility and educational value in search terms")
        elif category == "professional":
            hints.append("Use professional terminology and focus on career-advancing opportunities")

        return hints

    def constraints(self, analysis: ProfileAnalysis) -> List[str]:
        constraints = [
            "Avoid scam or pay-to-play opportunities",
            "Focus on reputable organizations and institutions",
            "Exclude expired or past-deadline opportunities",
            "Ensure opportunities match the artist's mediums and experience level",
        ]
        if not analysis.geographic_scope.is_remote_eligible:
            constraints.append("Focus on geographically accessible opportunities")
        return constraints

    def system_prompt(self, analysis: ProfileAnalysis) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(
            mediums=", ".join(analysis.primary_mediums),
            experience=analysis.experience_level.category,
            interests=", ".join(analysis.primary_interests),
        )

    def user_prompt(self, summary: str, objectives: List[str], hints: List[str]) -> str:
        prompt = USER_PROMPT_TEMPLATE.format(
            summary=summary,
            objectives="\n".join(f"- {o}" for o in objectives),
            hints="\n".join(f"- {h}" for h in hints),
        )
        return truncate_prompt(prompt, self.max_prompt_length)
