"""
Sub-scorer interface.

Every sub-scorer judges one (profile, opportunity) pair on [0, 1]
independently of the others, so the engine can run them concurrently.
"""

from typing import Protocol, runtime_checkable

from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile


@runtime_checkable
class Scorer(Protocol):
    """Protocol for relevance sub-scorers."""

    name: str

    async def score(self, profile: ArtistProfile, opportunity: Opportunity) -> float:
        ...

    def health_check(self) -> bool:
        ...


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
