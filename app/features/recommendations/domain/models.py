"""
Domain models for the course recommendation feature.

Plain dataclasses and enums shared by repositories, strategies, services and
the API layer. They carry no persistence logic.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class InteractionType(str, Enum):
    VIEW = "VIEW"
    REVIEW = "REVIEW"
    FAVORITE = "FAVORITE"
    SEARCH = "SEARCH"


DEFAULT_INTERACTION_WEIGHTS: dict[InteractionType, float] = {
    InteractionType.VIEW: 1.0,
    InteractionType.SEARCH: 0.5,
    InteractionType.FAVORITE: 2.0,
    InteractionType.REVIEW: 3.0,
}

# Interactions that invalidate a user's cached recommendations
SIGNIFICANT_INTERACTIONS = frozenset({InteractionType.REVIEW, InteractionType.FAVORITE})


class RecommendationReason(str, Enum):
    COLD_START = "COLD_START"
    COLLABORATIVE = "COLLABORATIVE"
    CONTENT = "CONTENT"
    TRENDING = "TRENDING"
    PERSONALIZED = "PERSONALIZED"
    HYBRID = "HYBRID"


class RecommendationType(str, Enum):
    ALL = "all"
    COLLABORATIVE = "collaborative"
    CONTENT = "content"
    TRENDING = "trending"
    PERSONALIZED = "personalized"

    @property
    def reason(self) -> RecommendationReason | None:
        """Cache reason filter for single-strategy requests; None for ``all``."""
        return _TYPE_REASONS.get(self)


_TYPE_REASONS = {
    RecommendationType.COLLABORATIVE: RecommendationReason.COLLABORATIVE,
    RecommendationType.CONTENT: RecommendationReason.CONTENT,
    RecommendationType.TRENDING: RecommendationReason.TRENDING,
    RecommendationType.PERSONALIZED: RecommendationReason.PERSONALIZED,
}


@dataclass(slots=True, frozen=True)
class InteractionEvent:
    """One immutable row of the interaction log."""

    id: str
    user_id: str
    course_id: str
    type: InteractionType
    weight: float
    occurred_at: datetime

    @property
    def is_significant(self) -> bool:
        return self.type in SIGNIFICANT_INTERACTIONS


@dataclass(slots=True, frozen=True)
class ScoredCandidate:
    """A course suggested by one strategy, or by several after merging."""

    course_id: str
    score: float
    reason: RecommendationReason
    sources: tuple[RecommendationReason, ...] = ()

    @property
    def contributor_count(self) -> int:
        return len(self.sources) or 1


@dataclass(slots=True, frozen=True)
class RecommendationCacheEntry:
    """Materialized recommendation keyed by (user_id, course_id, reason)."""

    user_id: str
    course_id: str
    score: float
    reason: RecommendationReason
    computed_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        if self.expires_at <= self.computed_at:
            raise ValueError("expires_at must be later than computed_at")

    @property
    def key(self) -> tuple[str, str, RecommendationReason]:
        return (self.user_id, self.course_id, self.reason)

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now


@dataclass(slots=True)
class InstructorRef:
    id: str
    name: str


@dataclass(slots=True)
class CourseSummary:
    """Catalog fields joined onto every returned recommendation."""

    id: str
    course_name: str | None
    course_code: str | None
    department: str | None
    campus: str | None
    year: int | None
    term: str | None
    credits: float | None
    instructors: list[InstructorRef] = field(default_factory=list)


@dataclass(slots=True)
class CourseProfile:
    """Attributes used for content similarity."""

    id: str
    department: str | None
    instructor_ids: frozenset[str] = frozenset()
    tag_ids: frozenset[str] = frozenset()


@dataclass(slots=True)
class CourseReviewStats:
    """Aggregated active-review signals for one course (ratings on a 1-5 scale)."""

    course_id: str
    department: str | None
    review_count: int
    avg_coolness: float | None
    avg_usefulness: float | None
    avg_grading: float | None


@dataclass(slots=True)
class RecommendedCourse:
    """One item of a recommendation response."""

    course: CourseSummary
    score: float
    reason: RecommendationReason


@dataclass(slots=True)
class RecommendationResult:
    items: list[RecommendedCourse]
    cached: bool
    cold_start: bool = False
