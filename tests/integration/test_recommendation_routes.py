"""
Route tests for the recommendation endpoints, wired to in-memory stores.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.features.recommendations import recommendations_router
from app.features.recommendations.dependencies import get_interaction_log, get_orchestrator
from app.features.recommendations.domain.models import RecommendationReason, ScoredCandidate
from app.features.recommendations.services import RecommendationOrchestrator
from app.features.recommendations.strategies import (
    ColdStartStrategy,
    CollaborativeStrategy,
    ContentBasedStrategy,
    PersonalizedStrategy,
    TrendingStrategy,
)

USER_ID = "user-123"


@pytest.fixture
def seeded_catalog(catalog):
    catalog.add_user(USER_ID, email="C109193108@nkust.edu.tw")
    catalog.add_course("cs1", department="CS", instructors=["i1"])
    catalog.add_course("ee1", department="EE", instructors=["i2"])
    for i in range(3):
        catalog.add_review(f"r{i}", "cs1", coolness=4, usefulness=4, grading=3)
        catalog.add_review(f"r{i}", "ee1", coolness=5, usefulness=3, grading=4)
    return catalog


@pytest.fixture
def orchestrator(interaction_log, cache, seeded_catalog, interactions, persistence):
    strategies = {
        RecommendationReason.COLLABORATIVE: CollaborativeStrategy(interactions, seeded_catalog),
        RecommendationReason.CONTENT: ContentBasedStrategy(interactions, seeded_catalog),
        RecommendationReason.TRENDING: TrendingStrategy(interactions),
        RecommendationReason.PERSONALIZED: PersonalizedStrategy(interactions, seeded_catalog),
    }
    return RecommendationOrchestrator(
        interaction_log,
        cache,
        seeded_catalog,
        ColdStartStrategy(seeded_catalog, interactions, {"C1": "CS", "E1": "EE"}),
        strategies,
        persistence,
    )


@pytest.fixture
def app(interaction_log, orchestrator):
    app = FastAPI()
    app.include_router(recommendations_router)
    app.dependency_overrides[get_interaction_log] = lambda: interaction_log
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return app


@pytest.fixture
def client(app, apply_auth_override):
    apply_auth_override(app)
    return TestClient(app)


def test_record_interaction(client, interactions):
    response = client.post("/interactions", json={"courseId": "cs1", "type": "view"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["interaction"]["type"] == "VIEW"
    assert data["interaction"]["id"] == interactions.events[0].id
    assert "createdAt" in data["interaction"]
    assert interactions.events[0].weight == 1.0


@pytest.mark.parametrize(
    "body",
    [
        {"type": "VIEW"},
        {"courseId": "cs1"},
        {"courseId": "cs1", "type": "LIKE"},
        {"courseId": "cs1", "type": "VIEW", "weight": -1},
    ],
)
def test_record_interaction_rejects_bad_input(client, interactions, body):
    response = client.post("/interactions", json=body)

    assert response.status_code == 400
    assert interactions.events == []


def test_record_interaction_unknown_course(client):
    response = client.post("/interactions", json={"courseId": "nope", "type": "VIEW"})

    assert response.status_code == 404


def test_routes_require_authentication(app):
    client = TestClient(app)

    assert client.post("/interactions", json={"courseId": "cs1", "type": "VIEW"}).status_code == 401
    assert client.get("/recommendations").status_code == 401


def test_cold_user_gets_cold_start_items(client):
    response = client.get("/recommendations", params={"type": "content", "limit": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["cached"] is False
    items = data["recommendations"]
    assert {item["id"] for item in items} == {"cs1", "ee1"}
    assert {item["reason"] for item in items} == {"COLD_START"}
    assert items[0]["courseName"].startswith("Course ")
    assert "courseCode" in items[0]
    assert items[0]["instructors"][0].keys() == {"id", "name"}


@pytest.mark.parametrize(
    "params", [{"type": "popular"}, {"limit": 0}, {"limit": -3}, {"limit": "abc"}, {"limit": "2.5"}]
)
def test_recommendations_reject_bad_query(client, params):
    assert client.get("/recommendations", params=params).status_code == 400


def test_trending_for_active_user(client, interactions):
    client.post("/interactions", json={"courseId": "cs1", "type": "VIEW"})
    interactions.add("someone", "ee1")
    interactions.add("someone-else", "ee1")

    response = client.get("/recommendations", params={"type": "trending"})

    assert response.status_code == 200
    items = response.json()["recommendations"]
    assert [item["id"] for item in items] == ["ee1"]
    assert items[0]["reason"] == "TRENDING"
    assert items[0]["score"] == 1.0


def test_cached_recommendations_are_flagged(client, interactions, cache, cache_repository):
    interactions.add(USER_ID, "cs1")
    entries = cache.build_entries(
        USER_ID, [ScoredCandidate("ee1", 0.75, RecommendationReason.CONTENT)]
    )
    cache_repository.rows.update({entry.key: entry for entry in entries})

    response = client.get("/recommendations", params={"type": "content", "useCache": "true"})

    data = response.json()
    assert data["cached"] is True
    assert [item["id"] for item in data["recommendations"]] == ["ee1"]
    assert data["recommendations"][0]["score"] == 0.75

    bypass = client.get("/recommendations", params={"type": "content", "useCache": "false"})
    assert bypass.json()["cached"] is False
