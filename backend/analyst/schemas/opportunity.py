from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional


class Opportunity(BaseModel):
    id: str = Field(..., min_length=1)
    title: str
    description: str
    organization: Optional[str] = None
    url: Optional[str] = None
    location: Optional[str] = None
    amount: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None

    # Written back by the caller after scoring
    relevance_score: Optional[float] = None
    component_scores: Optional[dict[str, float]] = None
    ai_service_used: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v):
        if v is None:
            return []
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        # Amounts arrive as numbers from some sources
        if v is None:
            return None
        return str(v)
