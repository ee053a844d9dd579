"""
Repository for the recommendation_cache table.
"""

from collections.abc import Sequence
from datetime import datetime

from app.db.helpers import execute_many, execute_query, fetch_all
from app.db.pool import DatabasePoolManager
from app.features.recommendations.domain.models import (
    RecommendationCacheEntry,
    RecommendationReason,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RecommendationCacheRepository:
    """Rows keyed by (user_id, course_id, reason); expiry filtered at query time."""

    def __init__(self, pool: DatabasePoolManager):
        self._pool = pool

    async def fetch_live(
        self,
        user_id: str,
        now: datetime,
        reason: RecommendationReason | None = None,
    ) -> list[RecommendationCacheEntry]:
        query = """
            SELECT user_id, course_id, reason, score, computed_at, expires_at
            FROM recommendation_cache
            WHERE user_id = %s
              AND expires_at > %s
        """
        params: tuple = (user_id, now)
        if reason is not None:
            query += " AND reason = %s"
            params += (reason.value,)
        query += " ORDER BY score DESC, course_id"

        rows = await fetch_all(self._pool, query, params)
        return [
            RecommendationCacheEntry(
                user_id=row["user_id"],
                course_id=row["course_id"],
                score=float(row["score"]),
                reason=RecommendationReason(row["reason"]),
                computed_at=row["computed_at"],
                expires_at=row["expires_at"],
            )
            for row in rows
        ]

    async def insert_ignore_conflicts(self, entries: Sequence[RecommendationCacheEntry]) -> int:
        """Insert entries; rows colliding on the primary key are skipped, never overwritten."""
        return await execute_many(
            self._pool,
            """
            INSERT INTO recommendation_cache
                (user_id, course_id, reason, score, computed_at, expires_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, course_id, reason) DO NOTHING
            """,
            [
                (
                    entry.user_id,
                    entry.course_id,
                    entry.reason.value,
                    entry.score,
                    entry.computed_at,
                    entry.expires_at,
                )
                for entry in entries
            ],
        )

    async def delete_for_user(self, user_id: str) -> int:
        return await execute_query(
            self._pool,
            "DELETE FROM recommendation_cache WHERE user_id = %s",
            (user_id,),
        )

    async def purge_expired(self, now: datetime) -> int:
        """Physically remove expired rows. Reads already ignore them."""
        return await execute_query(
            self._pool,
            "DELETE FROM recommendation_cache WHERE expires_at <= %s",
            (now,),
        )
