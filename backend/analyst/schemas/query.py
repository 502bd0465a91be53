from pydantic import BaseModel, Field
from typing import Any, Literal, Optional

from analyst.schemas.profile import ArtistProfile, ProfileAnalysis

SourceType = Literal["websearch", "social", "bookmark", "newsletter"]
Priority = Literal["low", "medium", "high"]


class GeneratedQuery(BaseModel):
    text: str
    source_tag: SourceType
    priority: float
    context: dict[str, Any] = Field(default_factory=dict)
    expected_result_count: int = 0


class AIContext(BaseModel):
    system_prompt: str
    user_prompt: str
    profile_summary: str
    search_objectives: list[str] = Field(default_factory=list)
    contextual_hints: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    expected_output_format: str = ""
    profile_analysis: ProfileAnalysis


class QueryGenerationRequest(BaseModel):
    profile: ArtistProfile
    sources: Optional[list[SourceType]] = None
    max_queries: Optional[int] = Field(None, ge=1)
    priority: Priority = "medium"


class QueryGenerationResult(BaseModel):
    queries: list[GeneratedQuery]
    source_distribution: dict[str, int] = Field(default_factory=dict)
    processing_time_ms: float = 0.0
    ai_service_used: str = ""
    cache_hit: bool = False
