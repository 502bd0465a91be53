from pydantic import BaseModel, Field
from typing import Any, Optional

from analyst.schemas.profile import ArtistProfile

COMPONENTS = ("semantic", "keyword", "category", "location", "experience", "deadline")


class ScoringWeights(BaseModel):
    semantic: float = Field(0.35, ge=0.0)
    keyword: float = Field(0.25, ge=0.0)
    category: float = Field(0.20, ge=0.0)
    location: float = Field(0.10, ge=0.0)
    experience: float = Field(0.10, ge=0.0)
    deadline: float = Field(0.05, ge=0.0)


class WeightsUpdate(BaseModel):
    """Partial weight update; unset fields keep their current value."""

    semantic: Optional[float] = Field(None, ge=0.0)
    keyword: Optional[float] = Field(None, ge=0.0)
    category: Optional[float] = Field(None, ge=0.0)
    location: Optional[float] = Field(None, ge=0.0)
    experience: Optional[float] = Field(None, ge=0.0)
    deadline: Optional[float] = Field(None, ge=0.0)


class ComponentScores(BaseModel):
    semantic: float = 0.0
    keyword: float = 0.0
    category: float = 0.0
    location: float = 0.0
    experience: float = 0.0
    deadline: float = 0.0


class ScoringResult(BaseModel):
    opportunity_id: str
    overall_score: float = Field(..., ge=0.0, le=1.0)
    component_scores: ComponentScores
    reasoning: str = ""
    processing_time_ms: float = 0.0


class ScoringError(BaseModel):
    opportunity_id: Optional[str] = None
    operation: str
    message: str


class BatchScoringResult(BaseModel):
    scores: dict[str, float] = Field(default_factory=dict)
    detailed: list[ScoringResult] = Field(default_factory=list)
    average_score: float = 0.0
    processing_time_ms: float = 0.0
    ai_service_used: str = ""
    errors: list[ScoringError] = Field(default_factory=list)

    def summary(self) -> dict[str, dict[str, float]]:
        """
        Per-component min/average/max computed from the detailed results.

        Returns:
            Dict keyed by component name, e.g. {"semantic": {"min": .., "average": .., "max": ..}}
        """
        stats: dict[str, dict[str, float]] = {}
        for component in COMPONENTS:
            values = [getattr(r.component_scores, component) for r in self.detailed]
            if values:
                stats[component] = {
                    "min": min(values),
                    "average": sum(values) / len(values),
                    "max": max(values),
                }
            else:
                stats[component] = {"min": 0.0, "average": 0.0, "max": 0.0}
        return stats


class ScoreRequest(BaseModel):
    profile: ArtistProfile
    # Validated by the service so malformed payloads surface as ValidationError
    opportunity: dict[str, Any]


class BatchScoreRequest(BaseModel):
    profile: ArtistProfile
    opportunities: list[dict[str, Any]] = Field(default_factory=list)
