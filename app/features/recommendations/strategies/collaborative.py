"""
Collaborative filtering: "students who took A also took B".

Neighbours are users whose weighted course sets overlap the target's; their
other courses are scored by neighbour similarity times interaction weight.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping

from app.features.recommendations.domain.models import (
    InteractionEvent,
    RecommendationReason,
    ScoredCandidate,
)
from app.features.recommendations.repository import CatalogRepository, InteractionRepository
from app.infrastructure.observability.logging import get_logger

from .base import RecommendationStrategy, normalize_by_max

logger = get_logger(__name__)


def course_weights(events: Iterable[InteractionEvent]) -> dict[str, float]:
    weights: dict[str, float] = defaultdict(float)
    for event in events:
        weights[event.course_id] += event.weight
    return dict(weights)


def weighted_jaccard(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    """sum(min) / sum(max) over the union of courses; 0.0 when either side is empty."""
    keys = set(a) | set(b)
    if not keys:
        return 0.0
    numerator = sum(min(a.get(k, 0.0), b.get(k, 0.0)) for k in keys)
    denominator = sum(max(a.get(k, 0.0), b.get(k, 0.0)) for k in keys)
    return numerator / denominator if denominator > 0 else 0.0


class CollaborativeStrategy(RecommendationStrategy):
    reason = RecommendationReason.COLLABORATIVE

    def __init__(
        self,
        interactions: InteractionRepository,
        catalog: CatalogRepository,
        min_similar_users: int = 2,
        max_neighbours: int = 50,
    ):
        self._interactions = interactions
        self._catalog = catalog
        self.min_similar_users = min_similar_users
        self.max_neighbours = max_neighbours

    async def compute(self, user_id: str | None, limit: int) -> list[ScoredCandidate]:
        if not user_id or limit <= 0:
            return []

        target = course_weights(await self._interactions.fetch_for_user(user_id))
        if not target:
            return []

        neighbour_ids = await self._interactions.fetch_overlapping_users(
            user_id, list(target), self.max_neighbours
        )
        if len(neighbour_ids) < self.min_similar_users:
            logger.debug(
                "Not enough overlapping users",
                user_id=user_id,
                neighbours=len(neighbour_ids),
            )
            return []

        by_user: dict[str, list[InteractionEvent]] = defaultdict(list)
        for event in await self._interactions.fetch_for_users(neighbour_ids):
            by_user[event.user_id].append(event)

        similarities = {
            other: sim
            for other, events in by_user.items()
            if (sim := weighted_jaccard(target, course_weights(events))) > 0
        }
        if len(similarities) < self.min_similar_users:
            return []

        excluded = (
            await self._interactions.fetch_course_ids_for_user(user_id)
            | await self._catalog.fetch_reviewed_or_favorited_ids(user_id)
        )

        scores: dict[str, float] = defaultdict(float)
        for other, similarity in similarities.items():
            for course_id, weight in course_weights(by_user[other]).items():
                if course_id not in excluded:
                    scores[course_id] += similarity * weight

        ranked = self.rank(normalize_by_max(scores), limit)
        logger.debug(
            "Collaborative candidates scored",
            user_id=user_id,
            similar_users=len(similarities),
            returned=len(ranked),
        )
        return ranked
