from analyst.schemas.profile import (
    ArtistProfile,
    ExperienceLevel,
    GeographicScope,
    ProfileAnalysis,
)
from analyst.schemas.opportunity import Opportunity
from analyst.schemas.query import (
    AIContext,
    GeneratedQuery,
    Priority,
    QueryGenerationRequest,
    QueryGenerationResult,
    SourceType,
)
from analyst.schemas.scoring import (
    BatchScoreRequest,
    BatchScoringResult,
    ComponentScores,
    ScoreRequest,
    ScoringError,
    ScoringResult,
    ScoringWeights,
    WeightsUpdate,
)

__all__ = [
    "ArtistProfile",
    "ExperienceLevel",
    "GeographicScope",
    "ProfileAnalysis",
    "Opportunity",
    "AIContext",
    "GeneratedQuery",
    "Priority",
    "QueryGenerationRequest",
    "QueryGenerationResult",
    "SourceType",
    "BatchScoreRequest",
    "BatchScoringResult",
    "ComponentScores",
    "ScoreRequest",
    "ScoringError",
    "ScoringResult",
    "ScoringWeights",
    "WeightsUpdate",
]
