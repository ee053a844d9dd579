"""
Read-only access to catalog tables owned by the main site.

Courses, instructors, tags, reviews and favorites are never written by the
recommendation service; these queries only shape them for scoring and for
joining summaries onto responses.
"""

from collections.abc import Iterable, Sequence

from app.db.helpers import fetch_all, fetch_one, fetch_val
from app.db.pool import DatabasePoolManager
from app.features.recommendations.domain.models import (
    CourseProfile,
    CourseReviewStats,
    CourseSummary,
    InstructorRef,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Reviews at or above this coolness count as positive engagement
POSITIVE_COOLNESS = 4


def _row_to_stats(row: dict) -> CourseReviewStats:
    def _avg(key: str) -> float | None:
        value = row.get(key)
        return float(value) if value is not None else None

    return CourseReviewStats(
        course_id=row["course_id"],
        department=row.get("department"),
        review_count=int(row["review_count"]),
        avg_coolness=_avg("avg_coolness"),
        avg_usefulness=_avg("avg_usefulness"),
        avg_grading=_avg("avg_grading"),
    )


class CatalogRepository:
    def __init__(self, pool: DatabasePoolManager):
        self._pool = pool

    async def user_exists(self, user_id: str) -> bool:
        row = await fetch_one(self._pool, "SELECT 1 AS ok FROM users WHERE id = %s", (user_id,))
        return row is not None

    async def course_exists(self, course_id: str) -> bool:
        row = await fetch_one(self._pool, "SELECT 1 AS ok FROM courses WHERE id = %s", (course_id,))
        return row is not None

    async def fetch_course_summaries(self, course_ids: Sequence[str]) -> dict[str, CourseSummary]:
        if not course_ids:
            return {}

        rows = await fetch_all(
            self._pool,
            """
            SELECT c.id, c.course_name, c.course_code, c.department, c.campus,
                   c.year, c.term, c.credits,
                   COALESCE(
                       json_agg(json_build_object('id', i.id, 'name', i.name))
                           FILTER (WHERE i.id IS NOT NULL),
                       '[]'
                   ) AS instructors
            FROM courses c
            LEFT JOIN course_instructors ci ON ci.course_id = c.id
            LEFT JOIN instructors i ON i.id = ci.instructor_id
            WHERE c.id = ANY(%s)
            GROUP BY c.id
            """,
            (list(course_ids),),
        )
        return {
            row["id"]: CourseSummary(
                id=row["id"],
                course_name=row["course_name"],
                course_code=row.get("course_code"),
                department=row.get("department"),
                campus=row.get("campus"),
                year=row.get("year"),
                term=row.get("term"),
                credits=row.get("credits"),
                instructors=[
                    InstructorRef(id=str(item["id"]), name=item["name"])
                    for item in row.get("instructors") or []
                ],
            )
            for row in rows
        }

    async def fetch_course_profiles(self, course_ids: Iterable[str]) -> list[CourseProfile]:
        ids = list(course_ids)
        if not ids:
            return []
        return await self._fetch_profiles("WHERE c.id = ANY(%s)", (ids,))

    async def fetch_similar_course_profiles(
        self,
        departments: Iterable[str],
        instructor_ids: Iterable[str],
        tag_ids: Iterable[str],
        exclude_ids: Iterable[str],
        limit: int,
    ) -> list[CourseProfile]:
        """Courses sharing a department, instructor or tag with the given sets."""
        return await self._fetch_profiles(
            """
            WHERE NOT (c.id = ANY(%s))
              AND (
                  c.department = ANY(%s)
                  OR EXISTS (
                      SELECT 1 FROM course_instructors x
                      WHERE x.course_id = c.id AND x.instructor_id = ANY(%s)
                  )
                  OR EXISTS (
                      SELECT 1 FROM course_tags t
                      WHERE t.course_id = c.id AND t.tag_id = ANY(%s)
                  )
              )
            """,
            (list(exclude_ids), list(departments), list(instructor_ids), list(tag_ids)),
            limit=limit,
        )

    async def _fetch_profiles(
        self, where_clause: str, params: tuple, limit: int | None = None
    ) -> list[CourseProfile]:
        query = f"""
            SELECT c.id, c.department,
                   ARRAY(SELECT ci.instructor_id::text FROM course_instructors ci
                         WHERE ci.course_id = c.id) AS instructor_ids,
                   ARRAY(SELECT ct.tag_id::text FROM course_tags ct
                         WHERE ct.course_id = c.id) AS tag_ids
            FROM courses c
            {where_clause}
            ORDER BY c.id
        """
        if limit is not None:
            query += " LIMIT %s"
            params = params + (limit,)

        rows = await fetch_all(self._pool, query, params)
        return [
            CourseProfile(
                id=row["id"],
                department=row.get("department"),
                instructor_ids=frozenset(row.get("instructor_ids") or ()),
                tag_ids=frozenset(row.get("tag_ids") or ()),
            )
            for row in rows
        ]

    async def fetch_review_stats(
        self,
        exclude_ids: Iterable[str] = (),
        department: str | None = None,
        limit: int = 200,
    ) -> list[CourseReviewStats]:
        """Per-course averages over active reviews, busiest courses first."""
        conditions = ["r.status = 'ACTIVE'", "NOT (c.id = ANY(%s))"]
        params: list = [list(exclude_ids)]
        if department:
            conditions.append("c.department = %s")
            params.append(department)
        params.append(limit)

        rows = await fetch_all(
            self._pool,
            f"""
            SELECT c.id AS course_id, c.department,
                   COUNT(r.*) AS review_count,
                   AVG(r.coolness) AS avg_coolness,
                   AVG(r.usefulness) AS avg_usefulness,
                   AVG(r.grading) AS avg_grading
            FROM courses c
            JOIN reviews r ON r.course_id = c.id
            WHERE {" AND ".join(conditions)}
            GROUP BY c.id, c.department
            ORDER BY review_count DESC, c.id
            LIMIT %s
            """,
            tuple(params),
        )
        return [_row_to_stats(row) for row in rows]

    async def fetch_global_average_coolness(self) -> float | None:
        value = await fetch_val(
            self._pool,
            "SELECT AVG(coolness) FROM reviews WHERE status = 'ACTIVE' AND coolness IS NOT NULL",
        )
        return float(value) if value is not None else None

    async def fetch_user_email(self, user_id: str) -> str | None:
        return await fetch_val(self._pool, "SELECT email FROM users WHERE id = %s", (user_id,))

    async def fetch_liked_course_ids(self, user_id: str) -> set[str]:
        """Courses the user reviewed positively or favorited."""
        rows = await fetch_all(
            self._pool,
            """
            SELECT course_id FROM reviews
            WHERE user_id = %s AND status = 'ACTIVE' AND coolness >= %s
            UNION
            SELECT course_id FROM favorites WHERE user_id = %s
            """,
            (user_id, POSITIVE_COOLNESS, user_id),
        )
        return {row["course_id"] for row in rows}

    async def fetch_reviewed_or_favorited_ids(self, user_id: str) -> set[str]:
        rows = await fetch_all(
            self._pool,
            """
            SELECT course_id FROM reviews WHERE user_id = %s
            UNION
            SELECT course_id FROM favorites WHERE user_id = %s
            """,
            (user_id, user_id),
        )
        return {row["course_id"] for row in rows}

    async def fetch_user_review_averages(self, user_id: str) -> dict[str, float] | None:
        """The user's own average ratings, or None when they have no active reviews."""
        row = await fetch_one(
            self._pool,
            """
            SELECT COUNT(*) AS review_count,
                   AVG(coolness) AS coolness,
                   AVG(usefulness) AS usefulness,
                   AVG(grading) AS grading
            FROM reviews
            WHERE user_id = %s AND status = 'ACTIVE'
            """,
            (user_id,),
        )
        if not row or not row["review_count"]:
            return None
        return {
            key: float(row[key]) if row[key] is not None else 0.0
            for key in ("coolness", "usefulness", "grading")
        }
