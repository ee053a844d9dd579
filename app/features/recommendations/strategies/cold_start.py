"""
Cold-start strategy for users without any recorded interaction.

Ranks courses by review quality and volume. When the user's email reveals
their department (student ids start with a department code) half of the
slots are reserved for that department's best courses.
"""

import math
from collections.abc import Mapping

from app.features.recommendations.domain.models import (
    CourseReviewStats,
    RecommendationReason,
    ScoredCandidate,
)
from app.features.recommendations.repository import CatalogRepository, InteractionRepository
from app.infrastructure.observability.logging import get_logger

from .base import RecommendationStrategy, rank_scores

logger = get_logger(__name__)

RATING_SCALE = 5.0
DEFAULT_GLOBAL_MEAN = 3.0
# Reviews needed before a course's own mean outweighs the global mean
MIN_REVIEWS = 5
QUALITY_WEIGHT = 0.8
VOLUME_WEIGHT = 0.2


def infer_department(email: str | None, prefixes: Mapping[str, str]) -> str | None:
    """Map the email local part (e.g. ``C109193108@...``) to a department."""
    if not email or "@" not in email:
        return None
    local_part = email.split("@", 1)[0].upper()
    for prefix in sorted(prefixes, key=len, reverse=True):
        if local_part.startswith(prefix.upper()):
            return prefixes[prefix]
    return None


def bayesian_rating(stats: CourseReviewStats, global_mean: float) -> float:
    """IMDb weighted rating: (v / (v + m)) * R + (m / (v + m)) * C."""
    v = stats.review_count
    r = stats.avg_coolness if stats.avg_coolness is not None else global_mean
    return (v / (v + MIN_REVIEWS)) * r + (MIN_REVIEWS / (v + MIN_REVIEWS)) * global_mean


def popularity_scores(stats: list[CourseReviewStats], global_mean: float) -> dict[str, float]:
    if not stats:
        return {}
    max_volume = math.log1p(max(s.review_count for s in stats)) or 1.0
    return {
        s.course_id: QUALITY_WEIGHT * bayesian_rating(s, global_mean) / RATING_SCALE
        + VOLUME_WEIGHT * math.log1p(s.review_count) / max_volume
        for s in stats
    }


class ColdStartStrategy(RecommendationStrategy):
    reason = RecommendationReason.COLD_START

    CANDIDATE_POOL = 200

    def __init__(
        self,
        catalog: CatalogRepository,
        interactions: InteractionRepository,
        department_prefixes: Mapping[str, str],
    ):
        self._catalog = catalog
        self._interactions = interactions
        self._department_prefixes = dict(department_prefixes)

    async def compute(
        self, user_id: str | None, limit: int, *, email: str | None = None
    ) -> list[ScoredCandidate]:
        if limit <= 0:
            return []

        if email is None and user_id:
            email = await self._catalog.fetch_user_email(user_id)

        # Skip courses the user already engaged with
        excluded: set[str] = set()
        if user_id:
            excluded = await self._interactions.fetch_course_ids_for_user(user_id)
            excluded |= await self._catalog.fetch_reviewed_or_favorited_ids(user_id)

        global_mean = await self._catalog.fetch_global_average_coolness() or DEFAULT_GLOBAL_MEAN
        global_stats = await self._catalog.fetch_review_stats(
            exclude_ids=excluded, limit=self.CANDIDATE_POOL
        )
        global_ranked = rank_scores(popularity_scores(global_stats, global_mean), self.reason, limit)

        department = infer_department(email, self._department_prefixes)
        if not department:
            logger.debug("Cold start using global popularity", user_id=user_id)
            return global_ranked

        department_stats = await self._catalog.fetch_review_stats(
            exclude_ids=excluded, department=department, limit=self.CANDIDATE_POOL
        )
        department_ranked = rank_scores(
            popularity_scores(department_stats, global_mean), self.reason, math.ceil(limit / 2)
        )

        picked = {c.course_id: c for c in department_ranked}
        for candidate in global_ranked:
            if len(picked) >= limit:
                break
            picked.setdefault(candidate.course_id, candidate)

        logger.debug(
            "Cold start blended department courses",
            user_id=user_id,
            department=department,
            department_count=len(department_ranked),
            returned=len(picked),
        )
        return sorted(picked.values(), key=lambda c: (-c.score, c.course_id))
