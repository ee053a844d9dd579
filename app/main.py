# app/main.py
"""
Course recommendation service.

The lifespan owns every shared resource: the Postgres pool, the Redis
client, the recommendation container and its background cache writer.
Nothing is created at import time besides the FastAPI app itself.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import DatabasePoolManager
from app.features.recommendations import build_container, recommendations_router
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.routes import health
from app.services.redis_client import FastRedisClient

setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    db_pool = DatabasePoolManager(settings)
    redis = FastRedisClient(settings.REDIS_URL)
    startup_tasks = []

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        logger.info("Initializing Redis connection")
        await redis.initialize()
        startup_tasks.append("redis")

        container = build_container(settings, db_pool, redis)
        container.persistence.start()
        startup_tasks.append("cache_writer")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        if "redis" in startup_tasks:
            await redis.close()
        if "database_pool" in startup_tasks:
            await db_pool.close()
        raise

    app.state.db_pool = db_pool
    app.state.redis = redis
    app.state.recommendations = container

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")

    # Flush pending cache writes while the pool is still open
    await container.persistence.stop()
    await redis.close()
    await db_pool.close()

    logger.info("All services closed")


app = FastAPI(
    title="Course Recommendations",
    description="Hybrid course recommendations with a materialized per-user cache",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(recommendations_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - start_time) * 1000, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
