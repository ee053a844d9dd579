"""
Personalized strategy built only from the user's own history.

Recent interactions count more (exponential decay with a configurable
half-life) when building department and instructor affinities. The user's
own review habits (liking "cool", useful or leniently graded courses) add a
preference match on top.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime

from app.features.recommendations.domain.models import (
    CourseProfile,
    CourseReviewStats,
    InteractionEvent,
    RecommendationReason,
    ScoredCandidate,
)
from app.features.recommendations.repository import CatalogRepository, InteractionRepository
from app.infrastructure.observability.logging import get_logger

from .base import RecommendationStrategy, normalize_by_max

logger = get_logger(__name__)

PREFERENCE_THRESHOLD = 4.0
AFFINITY_SHARE = 0.6
PREFERENCE_SHARE = 0.4
DEPARTMENT_SHARE = 0.6
INSTRUCTOR_SHARE = 0.4
PREFERENCE_WEIGHTS = {"coolness": 0.4, "usefulness": 0.3, "grading": 0.3}


def recency_weight(event: InteractionEvent, now: datetime, half_life_days: float) -> float:
    age_days = max((now - event.occurred_at).total_seconds() / 86400, 0.0)
    return event.weight * 0.5 ** (age_days / half_life_days)


def preference_match(prefs: dict[str, float], stats: CourseReviewStats | None) -> float:
    if not prefs or stats is None:
        return 0.0
    course_avgs = {
        "coolness": stats.avg_coolness,
        "usefulness": stats.avg_usefulness,
        "grading": stats.avg_grading,
    }
    score = 0.0
    for key, weight in PREFERENCE_WEIGHTS.items():
        course_value = course_avgs[key]
        if (
            prefs.get(key, 0.0) >= PREFERENCE_THRESHOLD
            and course_value is not None
            and course_value >= PREFERENCE_THRESHOLD
        ):
            score += weight
    return score


class PersonalizedStrategy(RecommendationStrategy):
    reason = RecommendationReason.PERSONALIZED

    CANDIDATE_POOL = 200

    def __init__(
        self,
        interactions: InteractionRepository,
        catalog: CatalogRepository,
        half_life_days: float = 30.0,
    ):
        if half_life_days <= 0:
            raise ValueError("half_life_days must be positive")
        self._interactions = interactions
        self._catalog = catalog
        self.half_life_days = half_life_days

    async def compute(self, user_id: str | None, limit: int) -> list[ScoredCandidate]:
        if not user_id or limit <= 0:
            return []

        events = await self._interactions.fetch_for_user(user_id)
        if not events:
            return []

        seen = await self._interactions.fetch_course_ids_for_user(user_id)
        seen_profiles = await self._catalog.fetch_course_profiles({e.course_id for e in events})
        departments, instructors = self.build_affinities(events, seen_profiles)
        prefs = await self._catalog.fetch_user_review_averages(user_id) or {}

        if not departments and not instructors and not prefs:
            return []

        profiles = await self._catalog.fetch_similar_course_profiles(
            departments, instructors, (), exclude_ids=seen, limit=self.CANDIDATE_POOL
        )
        stats = {
            s.course_id: s
            for s in await self._catalog.fetch_review_stats(
                exclude_ids=seen, limit=self.CANDIDATE_POOL
            )
        }

        candidates: dict[str, CourseProfile] = {p.id: p for p in profiles}
        if prefs:
            for course_id, s in stats.items():
                candidates.setdefault(course_id, CourseProfile(id=course_id, department=s.department))

        scores = {}
        for course_id, profile in candidates.items():
            if course_id in seen:
                continue
            affinity = DEPARTMENT_SHARE * departments.get(profile.department or "", 0.0)
            if profile.instructor_ids:
                affinity += INSTRUCTOR_SHARE * max(
                    (instructors.get(i, 0.0) for i in profile.instructor_ids), default=0.0
                )
            if prefs:
                score = AFFINITY_SHARE * affinity + PREFERENCE_SHARE * preference_match(
                    prefs, stats.get(course_id)
                )
            else:
                score = affinity
            scores[course_id] = score

        ranked = self.rank(scores, limit)
        logger.debug(
            "Personalized candidates scored",
            user_id=user_id,
            departments=len(departments),
            has_review_preferences=bool(prefs),
            returned=len(ranked),
        )
        return ranked

    def build_affinities(
        self, events: Iterable[InteractionEvent], profiles: Iterable[CourseProfile]
    ) -> tuple[dict[str, float], dict[str, float]]:
        """Recency-weighted department and instructor affinities scaled to [0, 1]."""
        now = datetime.now(UTC)
        by_course = {p.id: p for p in profiles}
        departments: dict[str, float] = defaultdict(float)
        instructors: dict[str, float] = defaultdict(float)

        for event in events:
            profile = by_course.get(event.course_id)
            if profile is None:
                continue
            weight = recency_weight(event, now, self.half_life_days)
            if profile.department:
                departments[profile.department] += weight
            for instructor_id in profile.instructor_ids:
                instructors[instructor_id] += weight

        return normalize_by_max(departments), normalize_by_max(instructors)
