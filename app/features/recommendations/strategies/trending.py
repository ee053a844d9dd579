"""
Trending strategy: courses with the most interaction velocity right now.
"""

import math
from datetime import UTC, datetime, timedelta

from app.features.recommendations.domain.models import RecommendationReason, ScoredCandidate
from app.features.recommendations.repository import CourseActivityRow, InteractionRepository
from app.infrastructure.observability.logging import get_logger

from .base import RecommendationStrategy, normalize_by_max

logger = get_logger(__name__)


class TrendingStrategy(RecommendationStrategy):
    reason = RecommendationReason.TRENDING

    # Courses pulled from the activity window before exclusion and truncation
    CANDIDATE_POOL = 200

    def __init__(self, interactions: InteractionRepository, window_days: int = 7):
        self._interactions = interactions
        self.window = timedelta(days=window_days)

    async def compute(self, user_id: str | None, limit: int) -> list[ScoredCandidate]:
        now = datetime.now(UTC)
        activity = await self._interactions.fetch_course_activity(
            now - self.window, limit=self.CANDIDATE_POOL
        )
        if not activity:
            return []

        seen: set[str] = set()
        if user_id:
            seen = await self._interactions.fetch_course_ids_for_user(user_id)

        scores = {
            row.course_id: self.velocity(row, now)
            for row in activity
            if row.course_id not in seen
        }
        ranked = self.rank(normalize_by_max(scores), limit)

        logger.debug(
            "Trending candidates scored",
            user_id=user_id,
            window_courses=len(activity),
            returned=len(ranked),
        )
        return ranked

    @staticmethod
    def velocity(row: CourseActivityRow, now: datetime) -> float:
        """Weighted activity damped by course age so new courses can surface."""
        age_days = 0.0
        if row.course_created_at is not None:
            age_days = max((now - row.course_created_at).total_seconds() / 86400, 0.0)
        return row.weighted_activity / (1.0 + math.log1p(age_days))
