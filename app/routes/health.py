# app/routes/health.py
"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "course-recommendations"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check covering the database pool, Redis and the cache writer.
    """
    state = request.app.state
    checks = {}
    overall_ok = True

    # 1) Redis
    t0 = time.time()
    try:
        redis_ok = await state.redis.ping()
        checks["redis"] = {"ok": bool(redis_ok), "latency_ms": round((time.time() - t0) * 1000, 1)}
        overall_ok = overall_ok and bool(redis_ok)
    except Exception as e:
        checks["redis"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Database pool
    t0 = time.time()
    try:
        db_health = await state.db_pool.health_check()
        is_healthy = db_health.get("healthy", False)
        checks["database"] = {"ok": is_healthy, "latency_ms": round((time.time() - t0) * 1000, 1)}
        if "pool_stats" in db_health:
            checks["database"]["pool_stats"] = db_health["pool_stats"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
        overall_ok = overall_ok and is_healthy
    except Exception as e:
        checks["database"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 3) Background cache writer
    try:
        persistence = state.recommendations.persistence
        checks["cache_writer"] = {
            "ok": persistence.running,
            "persisted_batches": persistence.persisted_batches,
            "dropped_batches": persistence.dropped_batches,
            "failed_batches": persistence.failed_batches,
        }
        overall_ok = overall_ok and persistence.running
    except AttributeError as e:
        checks["cache_writer"] = {"ok": False, "error": str(e)}
        overall_ok = False

    return {"overall_ok": overall_ok, "checks": checks}
