"""
Tests for health check endpoints.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.routes import health


@pytest.fixture
def health_app(fake_redis, persistence):
    app = FastAPI()
    app.include_router(health.router)
    app.state.redis = fake_redis
    app.state.db_pool = SimpleNamespace(
        health_check=AsyncMock(return_value={"healthy": True, "pool_stats": {"pool_size": 2}})
    )
    app.state.recommendations = SimpleNamespace(persistence=persistence)
    return app


def _mark_running(persistence):
    persistence._task = SimpleNamespace(done=lambda: False)


def test_healthz_endpoint(health_app):
    """Test the basic health check endpoint."""
    response = TestClient(health_app).get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readyz_all_services_healthy(health_app, persistence):
    _mark_running(persistence)

    response = TestClient(health_app).get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    checks = data["checks"]
    assert checks["redis"]["ok"] is True
    assert checks["database"]["ok"] is True
    assert checks["database"]["pool_stats"] == {"pool_size": 2}
    assert checks["cache_writer"]["ok"] is True


def test_readyz_redis_unhealthy(health_app, persistence):
    _mark_running(persistence)
    health_app.state.redis = SimpleNamespace(ping=AsyncMock(return_value=False))

    data = TestClient(health_app).get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["redis"]["ok"] is False


def test_readyz_database_unhealthy(health_app, persistence):
    _mark_running(persistence)
    health_app.state.db_pool.health_check = AsyncMock(
        return_value={"healthy": False, "error": "Connection failed"}
    )

    response = TestClient(health_app).get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Connection failed"


def test_readyz_cache_writer_stopped(health_app):
    data = TestClient(health_app).get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["cache_writer"]["ok"] is False
    assert data["checks"]["cache_writer"]["dropped_batches"] == 0
