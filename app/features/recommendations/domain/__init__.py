from .errors import (
    InvalidArgumentError,
    NotFoundError,
    PersistFailureError,
    RecommendationServiceError,
    StrategyTimeoutError,
    UnauthorizedError,
)
from .models import (
    DEFAULT_INTERACTION_WEIGHTS,
    SIGNIFICANT_INTERACTIONS,
    CourseProfile,
    CourseReviewStats,
    CourseSummary,
    InstructorRef,
    InteractionEvent,
    InteractionType,
    RecommendationCacheEntry,
    RecommendationReason,
    RecommendationResult,
    RecommendationType,
    RecommendedCourse,
    ScoredCandidate,
)

__all__ = [
    "DEFAULT_INTERACTION_WEIGHTS",
    "SIGNIFICANT_INTERACTIONS",
    "CourseProfile",
    "CourseReviewStats",
    "CourseSummary",
    "InstructorRef",
    "InteractionEvent",
    "InteractionType",
    "InvalidArgumentError",
    "NotFoundError",
    "PersistFailureError",
    "RecommendationCacheEntry",
    "RecommendationReason",
    "RecommendationResult",
    "RecommendationServiceError",
    "RecommendationType",
    "RecommendedCourse",
    "ScoredCandidate",
    "StrategyTimeoutError",
    "UnauthorizedError",
]
