"""
Location scorer.

Rules, first match wins:
    | Case                                        | Score |
    |---------------------------------------------|-------|
    | neither side states a location              | 0.5   |
    | exactly one side missing                    | 0.7   |
    | equal (case-insensitive)                    | 1.0   |
    | one contains the other                      | 0.8   |
    | opportunity mentions "remote" or "online"   | 0.9   |
    | otherwise                                   | 0.3   |
"""

from typing import Optional

from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile

REMOTE_MARKERS = ("remote", "online")


def _clean(location: Optional[str]) -> str:
    return (location or "").strip().lower()


def location_score(profile_location: Optional[str], opportunity_location: Optional[str]) -> float:
    artist = _clean(profile_location)
    target = _clean(opportunity_location)

    if not artist and not target:
        return 0.5
    if not artist or not target:
        return 0.7
    if artist == target:
        return 1.0
    if artist in target or target in artist:
        return 0.8
    if any(marker in target for marker in REMOTE_MARKERS):
        return 0.9
    return 0.3


class LocationScorer:
    name = "location"

    async def score(self, profile: ArtistProfile, opportunity: Opportunity) -> float:
        return location_score(profile.location, opportunity.location)

    def health_check(self) -> bool:
        return location_score("Brooklyn, NY", "brooklyn, ny") == 1.0
