"""
Content-based strategy: unseen courses that share department, instructors
or tags with the courses a user engaged with positively.
"""

from dataclasses import dataclass, field

from app.features.recommendations.domain.models import (
    SIGNIFICANT_INTERACTIONS,
    CourseProfile,
    RecommendationReason,
    ScoredCandidate,
)
from app.features.recommendations.repository import CatalogRepository, InteractionRepository
from app.infrastructure.observability.logging import get_logger

from .base import RecommendationStrategy

logger = get_logger(__name__)

DEPARTMENT_WEIGHT = 0.3
INSTRUCTOR_WEIGHT = 0.4
TAG_WEIGHT = 0.2
MAX_TAG_BONUS = 0.6


@dataclass(slots=True)
class ContentProfile:
    departments: set[str] = field(default_factory=set)
    instructor_ids: set[str] = field(default_factory=set)
    tag_ids: set[str] = field(default_factory=set)

    @classmethod
    def from_courses(cls, courses: list[CourseProfile]) -> "ContentProfile":
        profile = cls()
        for course in courses:
            if course.department:
                profile.departments.add(course.department)
            profile.instructor_ids.update(course.instructor_ids)
            profile.tag_ids.update(course.tag_ids)
        return profile

    @property
    def is_empty(self) -> bool:
        return not (self.departments or self.instructor_ids or self.tag_ids)


def attribute_overlap(course: CourseProfile, profile: ContentProfile) -> float:
    score = 0.0
    if course.department and course.department in profile.departments:
        score += DEPARTMENT_WEIGHT
    if course.instructor_ids & profile.instructor_ids:
        score += INSTRUCTOR_WEIGHT
    score += min(len(course.tag_ids & profile.tag_ids) * TAG_WEIGHT, MAX_TAG_BONUS)
    return score


class ContentBasedStrategy(RecommendationStrategy):
    reason = RecommendationReason.CONTENT

    def __init__(self, interactions: InteractionRepository, catalog: CatalogRepository):
        self._interactions = interactions
        self._catalog = catalog

    async def compute(self, user_id: str | None, limit: int) -> list[ScoredCandidate]:
        if not user_id or limit <= 0:
            return []

        events = await self._interactions.fetch_for_user(user_id)
        liked = await self._catalog.fetch_liked_course_ids(user_id)
        liked |= {e.course_id for e in events if e.type in SIGNIFICANT_INTERACTIONS}
        if not liked:
            return []

        profile = ContentProfile.from_courses(await self._catalog.fetch_course_profiles(liked))
        if profile.is_empty:
            return []

        seen = liked | await self._interactions.fetch_course_ids_for_user(user_id)
        candidates = await self._catalog.fetch_similar_course_profiles(
            profile.departments,
            profile.instructor_ids,
            profile.tag_ids,
            exclude_ids=seen,
            limit=limit * 4,
        )

        scores = {
            course.id: attribute_overlap(course, profile)
            for course in candidates
            if course.id not in seen
        }
        ranked = self.rank(scores, limit)
        logger.debug(
            "Content candidates scored",
            user_id=user_id,
            liked_courses=len(liked),
            returned=len(ranked),
        )
        return ranked
