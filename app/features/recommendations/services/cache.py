"""
Read-through recommendation cache.

Entries live in Postgres and expire 24 hours after computation. A per-user
invalidation generation kept in Redis lets the background writer discard a
batch that was computed before an invalidation it lost the race against.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from app.features.recommendations.domain.models import (
    RecommendationCacheEntry,
    RecommendationReason,
    ScoredCandidate,
)
from app.infrastructure.observability.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from app.features.recommendations.repository import RecommendationCacheRepository
    from app.services.redis_client import FastRedisClient

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)
# Generation keys outlive any cache entry they guard
GENERATION_KEY_TTL_S = 7 * 24 * 3600


def _generation_key(user_id: str) -> str:
    return f"recommendations:generation:{user_id}"


class RecommendationCache:
    def __init__(
        self,
        repository: RecommendationCacheRepository,
        redis: FastRedisClient | None = None,
        ttl: timedelta = DEFAULT_TTL,
    ):
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive")
        self._repository = repository
        self._redis = redis
        self.ttl = ttl

    async def get(
        self,
        user_id: str,
        reason: RecommendationReason | None = None,
        limit: int = 20,
        *,
        now: datetime | None = None,
    ) -> list[RecommendationCacheEntry] | None:
        """
        Return live entries for the user, one per course, or None on a miss.

        When several reasons cached the same course the highest score wins.
        Rows with ``expires_at <= now`` are never returned, whether or not
        they have been physically deleted yet.
        """
        now = now or datetime.now(UTC)
        rows = await self._repository.fetch_live(user_id, now, reason)

        best: dict[str, RecommendationCacheEntry] = {}
        for entry in rows:
            if not entry.is_live(now):
                continue
            if reason is not None and entry.reason != reason:
                continue
            current = best.get(entry.course_id)
            if current is None or entry.score > current.score:
                best[entry.course_id] = entry

        if not best:
            return None

        ordered = sorted(best.values(), key=lambda e: (-e.score, e.course_id))
        return ordered[:limit]

    async def put(self, entries: Sequence[RecommendationCacheEntry]) -> int:
        """Insert entries; existing keys are left untouched. Returns rows inserted."""
        if not entries:
            return 0
        inserted = await self._repository.insert_ignore_conflicts(entries)
        logger.debug(
            "Recommendation cache populated",
            user_id=entries[0].user_id,
            submitted=len(entries),
            inserted=inserted,
        )
        return inserted

    async def invalidate(self, user_id: str) -> int:
        """Drop every entry for the user regardless of reason or expiry."""
        # Bump first so an in-flight write computed before this call is discarded
        if self._redis is not None:
            await self._redis.incr_with_ttl(_generation_key(user_id), GENERATION_KEY_TTL_S)
        deleted = await self._repository.delete_for_user(user_id)
        logger.info("Recommendation cache invalidated", user_id=user_id, deleted=deleted)
        return deleted

    async def generation(self, user_id: str) -> str | None:
        """Current invalidation generation; None when never invalidated or Redis is down."""
        if self._redis is None:
            return None
        return await self._redis.get(_generation_key(user_id))

    def build_entries(
        self,
        user_id: str,
        candidates: Iterable[ScoredCandidate],
        computed_at: datetime | None = None,
    ) -> list[RecommendationCacheEntry]:
        computed_at = computed_at or datetime.now(UTC)
        expires_at = computed_at + self.ttl
        return [
            RecommendationCacheEntry(
                user_id=user_id,
                course_id=candidate.course_id,
                score=candidate.score,
                reason=candidate.reason,
                computed_at=computed_at,
                expires_at=expires_at,
            )
            for candidate in candidates
        ]
