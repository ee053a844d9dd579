"""
Background writer for computed recommendations.

Responses never wait on cache writes: the orchestrator submits batches to a
bounded queue drained by a single consumer task owned by the application
lifespan. A full queue drops the batch, a failed write is logged, and in
both cases the next request simply misses the cache again.
"""

import asyncio
from dataclasses import dataclass

from app.features.recommendations.domain.errors import PersistFailureError
from app.features.recommendations.domain.models import RecommendationCacheEntry
from app.features.recommendations.services.cache import RecommendationCache
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class PersistBatch:
    user_id: str
    entries: list[RecommendationCacheEntry]
    # Invalidation generation observed before computing the entries
    generation: str | None


class CachePersistenceWorker:
    def __init__(self, cache: RecommendationCache, max_queue_size: int = 100):
        self._cache = cache
        self._queue: asyncio.Queue[PersistBatch] = asyncio.Queue(maxsize=max_queue_size)
        self._task: asyncio.Task | None = None
        self.persisted_batches = 0
        self.dropped_batches = 0
        self.failed_batches = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="recommendation-cache-writer")
        logger.info("Cache persistence worker started", queue_size=self._queue.maxsize)

    async def stop(self, timeout: float = 10.0) -> None:
        """Flush queued batches (bounded by ``timeout``) then stop the consumer."""
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except TimeoutError:
            logger.warning("Cache writer stopped with pending batches", pending=self._queue.qsize())
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(
            "Cache persistence worker stopped",
            persisted=self.persisted_batches,
            dropped=self.dropped_batches,
            failed=self.failed_batches,
        )

    def submit(self, batch: PersistBatch) -> bool:
        """Queue a batch without blocking. Returns False when it was dropped."""
        if not batch.entries:
            return False
        try:
            self._queue.put_nowait(batch)
        except asyncio.QueueFull:
            self.dropped_batches += 1
            logger.warning(
                "Cache persistence queue full, dropping batch",
                user_id=batch.user_id,
                entries=len(batch.entries),
            )
            return False
        return True

    async def drain(self) -> None:
        """Wait until every queued batch has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            batch = await self._queue.get()
            try:
                await self.persist(batch)
            except PersistFailureError as exc:
                self.failed_batches += 1
                logger.error("Failed to cache recommendations", user_id=batch.user_id, error=str(exc))
            finally:
                self._queue.task_done()

    async def persist(self, batch: PersistBatch) -> int:
        """Write one batch unless the user was invalidated after it was computed."""
        try:
            current = await self._cache.generation(batch.user_id)
            if current != batch.generation:
                logger.info(
                    "Skipping stale recommendation batch",
                    user_id=batch.user_id,
                    computed_generation=batch.generation,
                    current_generation=current,
                )
                return 0
            inserted = await self._cache.put(batch.entries)
        except Exception as exc:
            raise PersistFailureError(f"{type(exc).__name__}: {exc}") from exc

        self.persisted_batches += 1
        return inserted
