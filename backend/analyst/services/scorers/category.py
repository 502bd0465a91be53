"""Category scorer: how many of the artist's mediums the opportunity mentions."""

from analyst.schemas.opportunity import Opportunity
from analyst.schemas.profile import ArtistProfile
from analyst.services.scorers.base import clamp

NO_MEDIUMS_SCORE = 0.5


class CategoryScorer:
    """Fraction of profile mediums found in the opportunity title, description and tags."""

    name = "category"

    async def score(self, profile: ArtistProfile, opportunity: Opportunity) -> float:
        mediums = [m.lower().strip() for m in profile.mediums if m and m.strip()]
        if not mediums:
            return NO_MEDIUMS_SCORE

        text = " ".join([opportunity.title, opportunity.description, *opportunity.tags]).lower()
        found = sum(1 for medium in mediums if medium in text)
        return clamp(found / len(mediums))

    def health_check(self) -> bool:
        return True
