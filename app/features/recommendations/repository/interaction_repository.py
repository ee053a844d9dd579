"""
Repository for the append-only user_interactions table.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from app.db.helpers import fetch_all, fetch_one, fetch_val
from app.db.pool import DatabasePoolManager
from app.features.recommendations.domain.models import InteractionEvent, InteractionType
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class CourseActivityRow:
    """Weighted interaction volume for one course inside a trailing window."""

    course_id: str
    weighted_activity: float
    interaction_count: int
    course_created_at: datetime | None


def _row_to_event(row: dict) -> InteractionEvent:
    return InteractionEvent(
        id=str(row["id"]),
        user_id=row["user_id"],
        course_id=row["course_id"],
        type=InteractionType(row["type"]),
        weight=float(row["weight"]),
        occurred_at=row["created_at"],
    )


class InteractionRepository:
    """Reads and appends interaction rows. Rows are never updated or deleted here."""

    def __init__(self, pool: DatabasePoolManager):
        self._pool = pool

    async def insert(
        self, user_id: str, course_id: str, interaction_type: InteractionType, weight: float
    ) -> InteractionEvent:
        row = await fetch_one(
            self._pool,
            """
            INSERT INTO user_interactions (user_id, course_id, type, weight)
            VALUES (%s, %s, %s, %s)
            RETURNING id, user_id, course_id, type, weight, created_at
            """,
            (user_id, course_id, interaction_type.value, weight),
        )
        return _row_to_event(row)

    async def count_for_user(self, user_id: str) -> int:
        count = await fetch_val(
            self._pool,
            "SELECT COUNT(*) FROM user_interactions WHERE user_id = %s",
            (user_id,),
        )
        return int(count or 0)

    async def fetch_course_ids_for_user(self, user_id: str) -> set[str]:
        """Every course the user ever interacted with, regardless of history length."""
        rows = await fetch_all(
            self._pool,
            "SELECT DISTINCT course_id FROM user_interactions WHERE user_id = %s",
            (user_id,),
        )
        return {row["course_id"] for row in rows}

    async def fetch_for_user(self, user_id: str, limit: int = 200) -> list[InteractionEvent]:
        """Most recent interactions of one user, newest first."""
        rows = await fetch_all(
            self._pool,
            """
            SELECT id, user_id, course_id, type, weight, created_at
            FROM user_interactions
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (user_id, limit),
        )
        return [_row_to_event(row) for row in rows]

    async def fetch_overlapping_users(
        self, user_id: str, course_ids: Sequence[str], limit: int
    ) -> list[str]:
        """Other users who interacted with any of ``course_ids``, most overlap first."""
        if not course_ids:
            return []

        rows = await fetch_all(
            self._pool,
            """
            SELECT user_id, COUNT(DISTINCT course_id) AS overlap
            FROM user_interactions
            WHERE course_id = ANY(%s)
              AND user_id <> %s
            GROUP BY user_id
            ORDER BY overlap DESC, user_id
            LIMIT %s
            """,
            (list(course_ids), user_id, limit),
        )
        return [row["user_id"] for row in rows]

    async def fetch_for_users(self, user_ids: Sequence[str]) -> list[InteractionEvent]:
        if not user_ids:
            return []

        rows = await fetch_all(
            self._pool,
            """
            SELECT id, user_id, course_id, type, weight, created_at
            FROM user_interactions
            WHERE user_id = ANY(%s)
            """,
            (list(user_ids),),
        )
        return [_row_to_event(row) for row in rows]

    async def fetch_course_activity(self, since: datetime, limit: int = 200) -> list[CourseActivityRow]:
        rows = await fetch_all(
            self._pool,
            """
            SELECT ui.course_id,
                   SUM(ui.weight) AS weighted_activity,
                   COUNT(*) AS interaction_count,
                   c.created_at AS course_created_at
            FROM user_interactions ui
            JOIN courses c ON c.id = ui.course_id
            WHERE ui.created_at >= %s
            GROUP BY ui.course_id, c.created_at
            ORDER BY weighted_activity DESC, ui.course_id
            LIMIT %s
            """,
            (since, limit),
        )
        return [
            CourseActivityRow(
                course_id=row["course_id"],
                weighted_activity=float(row["weighted_activity"] or 0.0),
                interaction_count=int(row["interaction_count"]),
                course_created_at=row["course_created_at"],
            )
            for row in rows
        ]
