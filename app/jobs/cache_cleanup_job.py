"""
Recommendation cache cleanup job.

Reads already ignore expired rows; this job only reclaims their storage by
deleting rows whose ``expires_at`` has passed.

Usage:
    python -m app.jobs.worker cache_cleanup
"""

import asyncio
from datetime import UTC, datetime

from app.config import settings
from app.db.pool import DatabasePoolManager
from app.features.recommendations.repository import RecommendationCacheRepository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CacheCleanupJob:
    def __init__(self, repository: RecommendationCacheRepository):
        self._repository = repository

    async def run_cleanup(self, now: datetime | None = None) -> dict:
        now = now or datetime.now(UTC)
        try:
            deleted = await self._repository.purge_expired(now)
        except Exception as e:
            logger.error("Recommendation cache cleanup failed", error=str(e))
            return {"success": False, "deleted": 0, "error": str(e)}

        logger.info("Recommendation cache cleanup completed", deleted=deleted)
        return {"success": True, "deleted": deleted}


async def start_cache_cleanup_scheduler() -> None:
    """Purge expired cache rows every CACHE_CLEANUP_INTERVAL_MINUTES until cancelled."""
    pool = DatabasePoolManager(settings)
    await pool.initialize()
    job = CacheCleanupJob(RecommendationCacheRepository(pool))
    interval_s = settings.CACHE_CLEANUP_INTERVAL_MINUTES * 60

    logger.info("Cache cleanup scheduler STARTED", interval_minutes=settings.CACHE_CLEANUP_INTERVAL_MINUTES)

    try:
        while True:
            await job.run_cleanup()
            await asyncio.sleep(interval_s)
    except asyncio.CancelledError:
        logger.info("Cache cleanup scheduler cancelled")
    finally:
        await pool.close()
