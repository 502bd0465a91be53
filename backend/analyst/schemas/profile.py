from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional

ExperienceCategory = Literal["beginner", "intermediate", "advanced", "professional"]


class ArtistProfile(BaseModel):
    id: str
    name: str = ""
    bio: Optional[str] = None
    artist_statement: Optional[str] = None
    mediums: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)
    experience: Optional[str] = None
    location: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("mediums", "skills", "interests", mode="before")
    @classmethod
    def coerce_list(cls, v):
        # Missing or null arrays are treated as empty
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v if item is not None]


class GeographicScope(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    is_remote_eligible: bool = True


class ExperienceLevel(BaseModel):
    category: ExperienceCategory = "intermediate"
    years_estimate: Optional[int] = None
    keywords: list[str] = Field(default_factory=list)


class ProfileAnalysis(BaseModel):
    primary_mediums: list[str] = Field(default_factory=list)
    secondary_mediums: list[str] = Field(default_factory=list)
    core_skills: list[str] = Field(default_factory=list)
    supporting_skills: list[str] = Field(default_factory=list)
    primary_interests: list[str] = Field(default_factory=list)
    geographic_scope: GeographicScope = Field(default_factory=GeographicScope)
    experience_level: ExperienceLevel = Field(default_factory=ExperienceLevel)
    searchable_keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)
    opportunity_types: list[str] = Field(default_factory=list)
    funding_preferences: list[str] = Field(default_factory=list)
