"""
Common contract for the strategy computers.

Every strategy returns at most ``limit`` candidates, scores in [0, 1],
best first, one entry per course. Lack of signal yields an empty list,
never an exception.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from app.features.recommendations.domain.models import RecommendationReason, ScoredCandidate


class RecommendationStrategy(ABC):
    """Interface for one independent scoring strategy."""

    reason: RecommendationReason

    @property
    def name(self) -> str:
        return self.reason.value.lower()

    @abstractmethod
    async def compute(self, user_id: str | None, limit: int) -> list[ScoredCandidate]:
        """Score candidate courses for ``user_id``."""

    def rank(self, scores: Mapping[str, float], limit: int) -> list[ScoredCandidate]:
        """Turn raw course scores into the ordered, clamped, truncated output."""
        return rank_scores(scores, self.reason, limit)


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize_by_max(scores: Mapping[str, float]) -> dict[str, float]:
    """Scale positive scores so the best one becomes 1.0; drops non-positive scores."""
    positive = {course_id: score for course_id, score in scores.items() if score > 0}
    if not positive:
        return {}
    top = max(positive.values())
    return {course_id: score / top for course_id, score in positive.items()}


def rank_scores(
    scores: Mapping[str, float], reason: RecommendationReason, limit: int
) -> list[ScoredCandidate]:
    if limit <= 0:
        return []
    ordered = sorted(
        ((course_id, clamp_unit(score)) for course_id, score in scores.items() if score > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return [
        ScoredCandidate(course_id=course_id, score=score, reason=reason, sources=(reason,))
        for course_id, score in ordered[:limit]
    ]
