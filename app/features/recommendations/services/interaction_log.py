"""
Interaction log service: validates and appends user/course interactions.
"""

import math

from app.features.recommendations.domain.errors import InvalidArgumentError, NotFoundError
from app.features.recommendations.domain.models import (
    DEFAULT_INTERACTION_WEIGHTS,
    InteractionEvent,
    InteractionType,
)
from app.features.recommendations.repository import CatalogRepository, InteractionRepository
from app.features.recommendations.services.cache import RecommendationCache
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def parse_interaction_type(value: str | InteractionType | None) -> InteractionType:
    if isinstance(value, InteractionType):
        return value
    if not value:
        raise InvalidArgumentError("type is required")
    try:
        return InteractionType(str(value).strip().upper())
    except ValueError as exc:
        valid = ", ".join(t.value for t in InteractionType)
        raise InvalidArgumentError(f"type must be one of: {valid}") from exc


def resolve_weight(interaction_type: InteractionType, weight: float | None) -> float:
    if weight is None:
        return DEFAULT_INTERACTION_WEIGHTS[interaction_type]
    try:
        value = float(weight)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError("weight must be a number") from exc
    if not math.isfinite(value) or value < 0:
        raise InvalidArgumentError("weight must be a finite number >= 0")
    return value


class InteractionLog:
    def __init__(
        self,
        interactions: InteractionRepository,
        catalog: CatalogRepository,
        cache: RecommendationCache,
    ):
        self._interactions = interactions
        self._catalog = catalog
        self._cache = cache

    async def record(
        self,
        user_id: str,
        course_id: str,
        interaction_type: str | InteractionType | None,
        weight: float | None = None,
    ) -> InteractionEvent:
        """
        Append one interaction.

        Input is fully validated before anything is written. For significant
        interactions (REVIEW, FAVORITE) the user's cached recommendations are
        invalidated once the row is stored; a failed invalidation is logged
        and does not undo or fail the append.

        Raises:
            InvalidArgumentError: missing course id, unknown type or bad weight
            NotFoundError: the user or course does not exist
        """
        if not course_id or not str(course_id).strip():
            raise InvalidArgumentError("courseId is required")
        parsed_type = parse_interaction_type(interaction_type)
        resolved_weight = resolve_weight(parsed_type, weight)

        if not await self._catalog.user_exists(user_id):
            raise NotFoundError("User not found")
        if not await self._catalog.course_exists(course_id):
            raise NotFoundError("Course not found")

        event = await self._interactions.insert(user_id, course_id, parsed_type, resolved_weight)
        logger.info(
            "Interaction recorded",
            user_id=user_id,
            course_id=course_id,
            type=parsed_type.value,
            weight=resolved_weight,
        )

        if event.is_significant:
            await self._invalidate_quietly(user_id)

        return event

    async def count_for_user(self, user_id: str) -> int:
        return await self._interactions.count_for_user(user_id)

    async def _invalidate_quietly(self, user_id: str) -> None:
        try:
            await self._cache.invalidate(user_id)
        except Exception as exc:
            logger.error(
                "Cache invalidation after interaction failed",
                user_id=user_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
