"""
Recommendation request orchestrator.

Flow per request:
    ColdCheck -> CacheCheck -> (hit) Return
                            -> (miss) Compute -> Merge / PassThrough -> PersistAsync -> Return

Users with no interactions always get cold-start suggestions. Strategy
failures and timeouts degrade to empty candidate lists; cache reads and
writes never fail a request once its input has been validated.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence

from app.features.recommendations.domain.errors import (
    InvalidArgumentError,
    StrategyTimeoutError,
    UnauthorizedError,
)
from app.features.recommendations.domain.models import (
    CourseSummary,
    RecommendationReason,
    RecommendationResult,
    RecommendationType,
    RecommendedCourse,
    ScoredCandidate,
)
from app.features.recommendations.repository import CatalogRepository
from app.features.recommendations.services.cache import RecommendationCache
from app.features.recommendations.services.interaction_log import InteractionLog
from app.features.recommendations.services.merger import merge
from app.features.recommendations.services.persistence_worker import (
    CachePersistenceWorker,
    PersistBatch,
)
from app.features.recommendations.strategies import ColdStartStrategy, RecommendationStrategy
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def parse_recommendation_type(value: str | RecommendationType | None) -> RecommendationType:
    if isinstance(value, RecommendationType):
        return value
    if not value:
        return RecommendationType.ALL
    try:
        return RecommendationType(str(value).strip().lower())
    except ValueError as exc:
        valid = ", ".join(t.value for t in RecommendationType)
        raise InvalidArgumentError(f"type must be one of: {valid}") from exc


class RecommendationOrchestrator:
    def __init__(
        self,
        interaction_log: InteractionLog,
        cache: RecommendationCache,
        catalog: CatalogRepository,
        cold_start: ColdStartStrategy,
        strategies: Mapping[RecommendationReason, RecommendationStrategy],
        persistence: CachePersistenceWorker,
        *,
        default_limit: int = 20,
        max_limit: int = 50,
        candidate_limit: int = 10,
        strategy_timeout_s: float = 2.0,
        request_timeout_s: float = 5.0,
    ):
        self._interaction_log = interaction_log
        self._cache = cache
        self._catalog = catalog
        self._cold_start = cold_start
        self._strategies = dict(strategies)
        self._persistence = persistence
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.candidate_limit = candidate_limit
        self.strategy_timeout_s = strategy_timeout_s
        self.request_timeout_s = request_timeout_s

    def clamp_limit(self, limit: int | str | None) -> int:
        if limit is None:
            return self.default_limit
        try:
            limit = int(str(limit).strip())
        except ValueError as exc:
            raise InvalidArgumentError("limit must be a positive integer") from exc
        if limit < 1:
            raise InvalidArgumentError("limit must be a positive integer")
        return min(limit, self.max_limit)

    async def get_recommendations(
        self,
        user_id: str | None,
        rec_type: str | RecommendationType | None = RecommendationType.ALL,
        limit: int | str | None = None,
        *,
        use_cache: bool = True,
        email: str | None = None,
    ) -> RecommendationResult:
        if not user_id:
            raise UnauthorizedError("Missing caller identity")
        rec_type = parse_recommendation_type(rec_type)
        limit = self.clamp_limit(limit)
        started = time.time()

        # ColdCheck
        cold = await self._interaction_log.count_for_user(user_id) == 0
        # ALL has no reason filter, so any live row for the user serves it
        reason_filter = RecommendationReason.COLD_START if cold else rec_type.reason

        # CacheCheck
        if use_cache:
            cached = await self._read_cache(user_id, reason_filter, limit)
            if cached is not None:
                items = await self._join_catalog(cached)
                logger.info(
                    "Recommendations served from cache",
                    user_id=user_id,
                    type=rec_type.value,
                    returned=len(items),
                )
                return RecommendationResult(items=items, cached=True, cold_start=cold)

        # Captured before computing so a concurrent invalidation voids this batch
        generation = await self._cache.generation(user_id)

        # Compute, then Merge / PassThrough
        if cold:
            candidates = await self._run_strategy(self._cold_start, user_id, limit, email=email)
        elif rec_type is RecommendationType.ALL:
            candidate_lists = await self._run_all(user_id, max(limit, self.candidate_limit), email)
            candidates = merge(candidate_lists, limit)
        else:
            candidates = await self._run_strategy(self._strategies[rec_type.reason], user_id, limit)

        # PersistAsync
        if candidates:
            self._persistence.submit(
                PersistBatch(
                    user_id=user_id,
                    entries=self._cache.build_entries(user_id, candidates),
                    generation=generation,
                )
            )

        items = await self._join_catalog(candidates)
        logger.info(
            "Recommendations computed",
            user_id=user_id,
            type=rec_type.value,
            cold_start=cold,
            returned=len(items),
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return RecommendationResult(items=items, cached=False, cold_start=cold)

    async def _read_cache(
        self, user_id: str, reason: RecommendationReason | None, limit: int
    ) -> list[ScoredCandidate] | None:
        try:
            entries = await self._cache.get(user_id, reason, limit)
        except Exception as exc:
            logger.error("Recommendation cache read failed", user_id=user_id, error=str(exc))
            return None
        if entries is None:
            return None
        return [
            ScoredCandidate(course_id=e.course_id, score=e.score, reason=e.reason)
            for e in entries
        ]

    async def _run_strategy(
        self,
        strategy: RecommendationStrategy,
        user_id: str,
        limit: int,
        **kwargs,
    ) -> list[ScoredCandidate]:
        """Run one strategy under its time budget; any failure yields []."""
        started = time.time()
        try:
            result = await asyncio.wait_for(
                strategy.compute(user_id, limit, **kwargs), timeout=self.strategy_timeout_s
            )
        except TimeoutError:
            error = StrategyTimeoutError(strategy.name, self.strategy_timeout_s)
            logger.warning("Recommendation strategy timed out", user_id=user_id, error=str(error))
            return []
        except Exception as exc:
            logger.error(
                "Recommendation strategy failed",
                strategy=strategy.name,
                user_id=user_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return []

        logger.debug(
            "Recommendation strategy completed",
            strategy=strategy.name,
            user_id=user_id,
            returned=len(result),
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return list(result[:limit])

    async def _run_all(
        self, user_id: str, per_strategy_limit: int, email: str | None
    ) -> dict[RecommendationReason, list[ScoredCandidate]]:
        """Run every strategy concurrently; whatever misses the request deadline is dropped."""
        tasks: dict[RecommendationReason, asyncio.Task] = {
            RecommendationReason.COLD_START: asyncio.create_task(
                self._run_strategy(self._cold_start, user_id, per_strategy_limit, email=email)
            )
        }
        for reason, strategy in self._strategies.items():
            tasks[reason] = asyncio.create_task(
                self._run_strategy(strategy, user_id, per_strategy_limit)
            )

        done, pending = await asyncio.wait(tasks.values(), timeout=self.request_timeout_s)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Recommendation request deadline hit",
                user_id=user_id,
                cancelled=len(pending),
            )

        return {
            reason: task.result()
            for reason, task in tasks.items()
            if task in done and not task.cancelled()
        }

    async def _join_catalog(self, candidates: Sequence[ScoredCandidate]) -> list[RecommendedCourse]:
        """Attach course summaries; courses missing from the catalog are dropped."""
        if not candidates:
            return []

        course_ids = [c.course_id for c in candidates]
        try:
            summaries = await self._catalog.fetch_course_summaries(course_ids)
        except Exception as exc:
            logger.error("Course summary lookup failed", error=str(exc), course_count=len(course_ids))
            summaries = {
                course_id: CourseSummary(
                    id=course_id,
                    course_name=None,
                    course_code=None,
                    department=None,
                    campus=None,
                    year=None,
                    term=None,
                    credits=None,
                )
                for course_id in course_ids
            }

        return [
            RecommendedCourse(course=summaries[c.course_id], score=c.score, reason=c.reason)
            for c in candidates
            if c.course_id in summaries
        ]
