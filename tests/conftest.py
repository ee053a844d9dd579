import uuid
from collections import defaultdict
from datetime import UTC, datetime, timedelta

import pytest

from app.auth.verify import auth_dependency
from app.features.recommendations.domain.models import (
    CourseProfile,
    CourseReviewStats,
    CourseSummary,
    InstructorRef,
    InteractionEvent,
    InteractionType,
)
from app.features.recommendations.repository import CourseActivityRow
from app.features.recommendations.services import (
    CachePersistenceWorker,
    InteractionLog,
    RecommendationCache,
)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123", "email": "C109193108@nkust.edu.tw"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def incr_with_ttl(self, key: str, ttl_s: int | None = None) -> int | None:
        value = int(self.store.get(key, "0")) + 1
        self.store[key] = str(value)
        return value


class InMemoryInteractionRepository:
    def __init__(self, catalog: "FakeCatalog"):
        self.events: list[InteractionEvent] = []
        self._catalog = catalog

    def add(self, user_id, course_id, interaction_type=InteractionType.VIEW, weight=1.0, age_days=0.0):
        event = InteractionEvent(
            id=str(uuid.uuid4()),
            user_id=user_id,
            course_id=course_id,
            type=interaction_type,
            weight=weight,
            occurred_at=datetime.now(UTC) - timedelta(days=age_days),
        )
        self.events.append(event)
        return event

    async def insert(self, user_id, course_id, interaction_type, weight):
        return self.add(user_id, course_id, interaction_type, weight)

    async def count_for_user(self, user_id):
        return sum(1 for e in self.events if e.user_id == user_id)

    async def fetch_course_ids_for_user(self, user_id):
        return {e.course_id for e in self.events if e.user_id == user_id}

    async def fetch_for_user(self, user_id, limit=200):
        events = [e for e in self.events if e.user_id == user_id]
        events.sort(key=lambda e: e.occurred_at, reverse=True)
        return events[:limit]

    async def fetch_overlapping_users(self, user_id, course_ids, limit):
        overlap: dict[str, set[str]] = defaultdict(set)
        for e in self.events:
            if e.user_id != user_id and e.course_id in course_ids:
                overlap[e.user_id].add(e.course_id)
        ranked = sorted(overlap, key=lambda u: (-len(overlap[u]), u))
        return ranked[:limit]

    async def fetch_for_users(self, user_ids):
        return [e for e in self.events if e.user_id in user_ids]

    async def fetch_course_activity(self, since, limit=200):
        totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
        for e in self.events:
            if e.occurred_at >= since:
                totals[e.course_id][0] += e.weight
                totals[e.course_id][1] += 1
        rows = [
            CourseActivityRow(
                course_id=course_id,
                weighted_activity=activity,
                interaction_count=count,
                course_created_at=self._catalog.created_at.get(course_id),
            )
            for course_id, (activity, count) in totals.items()
        ]
        rows.sort(key=lambda r: (-r.weighted_activity, r.course_id))
        return rows[:limit]


class FakeCatalog:
    def __init__(self):
        self.users: dict[str, str | None] = {}
        self.courses: dict[str, CourseSummary] = {}
        self.profiles: dict[str, CourseProfile] = {}
        self.created_at: dict[str, datetime] = {}
        self.reviews: list[dict] = []
        self.favorites: set[tuple[str, str]] = set()

    def add_user(self, user_id, email=None):
        self.users[user_id] = email

    def add_course(self, course_id, department=None, instructors=(), tags=(), age_days=365):
        self.courses[course_id] = CourseSummary(
            id=course_id,
            course_name=f"Course {course_id}",
            course_code=course_id.upper(),
            department=department,
            campus="Main",
            year=113,
            term="1",
            credits=3.0,
            instructors=[InstructorRef(id=i, name=f"Prof {i}") for i in instructors],
        )
        self.profiles[course_id] = CourseProfile(
            id=course_id,
            department=department,
            instructor_ids=frozenset(instructors),
            tag_ids=frozenset(tags),
        )
        self.created_at[course_id] = datetime.now(UTC) - timedelta(days=age_days)

    def add_review(self, user_id, course_id, coolness=None, usefulness=None, grading=None):
        self.reviews.append(
            {
                "user_id": user_id,
                "course_id": course_id,
                "coolness": coolness,
                "usefulness": usefulness,
                "grading": grading,
                "status": "ACTIVE",
            }
        )

    async def user_exists(self, user_id):
        return user_id in self.users

    async def course_exists(self, course_id):
        return course_id in self.courses

    async def fetch_user_email(self, user_id):
        return self.users.get(user_id)

    async def fetch_course_summaries(self, course_ids):
        return {cid: self.courses[cid] for cid in course_ids if cid in self.courses}

    async def fetch_course_profiles(self, course_ids):
        return [self.profiles[cid] for cid in sorted(course_ids) if cid in self.profiles]

    async def fetch_similar_course_profiles(
        self, departments, instructor_ids, tag_ids, exclude_ids, limit
    ):
        departments, instructor_ids, tag_ids = set(departments), set(instructor_ids), set(tag_ids)
        excluded = set(exclude_ids)
        matches = [
            p
            for cid, p in sorted(self.profiles.items())
            if cid not in excluded
            and (
                (p.department in departments)
                or (p.instructor_ids & instructor_ids)
                or (p.tag_ids & tag_ids)
            )
        ]
        return matches[:limit]

    def _avg(self, values):
        values = [v for v in values if v is not None]
        return sum(values) / len(values) if values else None

    async def fetch_review_stats(self, exclude_ids=(), department=None, limit=200):
        excluded = set(exclude_ids)
        grouped: dict[str, list[dict]] = defaultdict(list)
        for review in self.reviews:
            if review["status"] == "ACTIVE" and review["course_id"] not in excluded:
                grouped[review["course_id"]].append(review)
        stats = []
        for course_id, reviews in grouped.items():
            course_department = self.profiles[course_id].department
            if department and course_department != department:
                continue
            stats.append(
                CourseReviewStats(
                    course_id=course_id,
                    department=course_department,
                    review_count=len(reviews),
                    avg_coolness=self._avg(r["coolness"] for r in reviews),
                    avg_usefulness=self._avg(r["usefulness"] for r in reviews),
                    avg_grading=self._avg(r["grading"] for r in reviews),
                )
            )
        stats.sort(key=lambda s: (-s.review_count, s.course_id))
        return stats[:limit]

    async def fetch_global_average_coolness(self):
        return self._avg(r["coolness"] for r in self.reviews if r["status"] == "ACTIVE")

    async def fetch_liked_course_ids(self, user_id):
        liked = {
            r["course_id"]
            for r in self.reviews
            if r["user_id"] == user_id and (r["coolness"] or 0) >= 4
        }
        liked |= {cid for uid, cid in self.favorites if uid == user_id}
        return liked

    async def fetch_reviewed_or_favorited_ids(self, user_id):
        ids = {r["course_id"] for r in self.reviews if r["user_id"] == user_id}
        ids |= {cid for uid, cid in self.favorites if uid == user_id}
        return ids

    async def fetch_user_review_averages(self, user_id):
        mine = [r for r in self.reviews if r["user_id"] == user_id and r["status"] == "ACTIVE"]
        if not mine:
            return None
        return {
            key: self._avg(r[key] for r in mine) or 0.0
            for key in ("coolness", "usefulness", "grading")
        }


class InMemoryCacheRepository:
    def __init__(self):
        self.rows = {}
        self.fail_inserts = False

    async def fetch_live(self, user_id, now, reason=None):
        rows = [
            e
            for e in self.rows.values()
            if e.user_id == user_id and e.expires_at > now and (reason is None or e.reason == reason)
        ]
        return sorted(rows, key=lambda e: (-e.score, e.course_id))

    async def insert_ignore_conflicts(self, entries):
        if self.fail_inserts:
            raise RuntimeError("insert failed")
        inserted = 0
        for entry in entries:
            if entry.key not in self.rows:
                self.rows[entry.key] = entry
                inserted += 1
        return inserted

    async def delete_for_user(self, user_id):
        keys = [k for k in self.rows if k[0] == user_id]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def purge_expired(self, now):
        keys = [k for k, e in self.rows.items() if e.expires_at <= now]
        for key in keys:
            del self.rows[key]
        return len(keys)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def interactions(catalog):
    return InMemoryInteractionRepository(catalog)


@pytest.fixture
def cache_repository():
    return InMemoryCacheRepository()


@pytest.fixture
def cache(cache_repository, fake_redis):
    return RecommendationCache(cache_repository, fake_redis)


@pytest.fixture
def interaction_log(interactions, catalog, cache):
    return InteractionLog(interactions, catalog, cache)


@pytest.fixture
def persistence(cache):
    return CachePersistenceWorker(cache, max_queue_size=10)
