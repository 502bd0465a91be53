"""
Score Aggregation - Weighted Mean, Deadline Urgency and Reasoning

Overall score:
    overall = Σ(score_i × weight_i) / Σ(weight_i), clamped to [0, 1]

Dividing by the active weight total keeps the result on [0, 1] after any
partial weight update; a zero total yields 0.

Deadline urgency (days rounded up):
    | Remaining      | Score |
    |----------------|-------|
    | no deadline    | 0.5   |
    | already passed | 0.0   |
    | ≤ 7 days       | 1.0   |
    | ≤ 30 days      | 0.8   |
    | ≤ 90 days      | 0.6   |
    | ≤ 180 days     | 0.4   |
    | later          | 0.2   |
"""

import math
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from analyst.schemas.scoring import COMPONENTS, ComponentScores, ScoringWeights
from analyst.services.scorers.base import clamp

NO_DEADLINE_SCORE = 0.5

DEADLINE_BUCKETS: List[Tuple[int, float]] = [
    (7, 1.0),
    (30, 0.8),
    (90, 0.6),
    (180, 0.4),
]
FAR_DEADLINE_SCORE = 0.2

SECONDS_PER_DAY = 86400

# (component, high threshold, high phrase, low threshold, low phrase)
REASONING_RULES = [
    ("semantic", 0.7, "Strong semantic match with artist profile", 0.3, "Limited semantic alignment"),
    ("keyword", 0.7, "Excellent keyword match", 0.3, "Few matching keywords"),
    ("category", 0.8, "Perfect medium/category fit", 0.4, "Medium/category mismatch"),
    ("location", 0.7, "Geographically convenient", 0.3, "Geographic limitations"),
    ("experience", 0.7, "Experience level well-matched", 0.3, "Experience level mismatch"),
    ("deadline", 0.8, "Urgent deadline", 0.3, "Deadline passed or very tight"),
]

MAX_REASONS = 4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def deadline_score(deadline: Optional[datetime], now: Optional[datetime] = None) -> float:
    """
    Urgency of an application deadline.

    Naive datetimes are interpreted as UTC.

    Args:
        deadline: Application deadline, or None
        now: Reference time (defaults to the current UTC time)
    """
    if deadline is None:
        return NO_DEADLINE_SCORE

    now = now or utc_now()
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    remaining = (deadline - now).total_seconds()
    if remaining < 0:
        return 0.0

    days = math.ceil(remaining / SECONDS_PER_DAY)
    for limit, score in DEADLINE_BUCKETS:
        if days <= limit:
            return score
    return FAR_DEADLINE_SCORE


def overall_tier(overall: float) -> str:
    if overall > 0.8:
        return "Highly relevant opportunity"
    if overall > 0.6:
        return "Good match"
    if overall > 0.4:
        return "Moderate relevance"
    return "Low relevance"


class ScoreAggregator:
    """
    Combines component scores into one relevance score.

    Attributes:
        weights: Active scoring weights
        clock: Callable returning the current time, used for deadline scoring
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.weights = weights or ScoringWeights()
        self.clock = clock

    def update_weights(self, weights: ScoringWeights) -> None:
        self.weights = weights

    def deadline_score(self, deadline: Optional[datetime]) -> float:
        return deadline_score(deadline, self.clock())

    def aggregate(self, components: ComponentScores) -> float:
        total_weight = 0.0
        weighted_sum = 0.0
        for name in COMPONENTS:
            weight = getattr(self.weights, name)
            weighted_sum += getattr(components, name) * weight
            total_weight += weight

        if total_weight <= 0:
            return 0.0
        return clamp(weighted_sum / total_weight)

    def reasoning(self, components: ComponentScores, overall: float) -> str:
        reasons = [overall_tier(overall)]
        for name, high, high_phrase, low, low_phrase in REASONING_RULES:
            value = getattr(components, name)
            if value > high:
                reasons.append(high_phrase)
            elif value < low:
                reasons.append(low_phrase)
        return "; ".join(reasons[:MAX_REASONS])

    def health_check(self) -> bool:
        neutral = ComponentScores(**{name: 0.5 for name in COMPONENTS})
        return math.isclose(self.aggregate(neutral), 0.5) or sum(
            getattr(self.weights, name) for name in COMPONENTS
        ) == 0
