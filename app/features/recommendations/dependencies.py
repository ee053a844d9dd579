"""
Wiring for the recommendation feature.

The application lifespan builds one ``RecommendationContainer`` from the
database pool and Redis client and stores it on ``app.state``. Route
handlers reach the services through the FastAPI dependencies below, so
tests can swap them with ``app.dependency_overrides``.
"""

from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request

from app.config import Settings
from app.db.pool import DatabasePoolManager
from app.features.recommendations.domain.models import RecommendationReason
from app.features.recommendations.repository import (
    CatalogRepository,
    InteractionRepository,
    RecommendationCacheRepository,
)
from app.features.recommendations.services import (
    CachePersistenceWorker,
    InteractionLog,
    RecommendationCache,
    RecommendationOrchestrator,
)
from app.features.recommendations.strategies import (
    ColdStartStrategy,
    CollaborativeStrategy,
    ContentBasedStrategy,
    PersonalizedStrategy,
    TrendingStrategy,
)
from app.services.redis_client import FastRedisClient


@dataclass(slots=True)
class RecommendationContainer:
    cache: RecommendationCache
    cache_repository: RecommendationCacheRepository
    interaction_log: InteractionLog
    orchestrator: RecommendationOrchestrator
    persistence: CachePersistenceWorker


def build_container(
    settings: Settings, pool: DatabasePoolManager, redis: FastRedisClient | None
) -> RecommendationContainer:
    interactions = InteractionRepository(pool)
    catalog = CatalogRepository(pool)
    cache_repository = RecommendationCacheRepository(pool)

    cache = RecommendationCache(
        cache_repository,
        redis,
        ttl=timedelta(hours=settings.RECOMMENDATION_CACHE_TTL_HOURS),
    )
    interaction_log = InteractionLog(interactions, catalog, cache)
    persistence = CachePersistenceWorker(cache, max_queue_size=settings.CACHE_PERSIST_QUEUE_SIZE)

    strategies = {
        RecommendationReason.COLLABORATIVE: CollaborativeStrategy(
            interactions,
            catalog,
            min_similar_users=settings.COLLABORATIVE_MIN_SIMILAR_USERS,
            max_neighbours=settings.COLLABORATIVE_MAX_NEIGHBOURS,
        ),
        RecommendationReason.CONTENT: ContentBasedStrategy(interactions, catalog),
        RecommendationReason.TRENDING: TrendingStrategy(
            interactions, window_days=settings.TRENDING_WINDOW_DAYS
        ),
        RecommendationReason.PERSONALIZED: PersonalizedStrategy(
            interactions, catalog, half_life_days=settings.PERSONALIZED_HALF_LIFE_DAYS
        ),
    }

    orchestrator = RecommendationOrchestrator(
        interaction_log,
        cache,
        catalog,
        ColdStartStrategy(catalog, interactions, settings.COLD_START_DEPARTMENT_PREFIXES),
        strategies,
        persistence,
        default_limit=settings.RECOMMENDATION_DEFAULT_LIMIT,
        max_limit=settings.RECOMMENDATION_MAX_LIMIT,
        candidate_limit=settings.STRATEGY_CANDIDATE_LIMIT,
        strategy_timeout_s=settings.STRATEGY_TIMEOUT_SECONDS,
        request_timeout_s=settings.REQUEST_TIMEOUT_SECONDS,
    )

    return RecommendationContainer(
        cache=cache,
        cache_repository=cache_repository,
        interaction_log=interaction_log,
        orchestrator=orchestrator,
        persistence=persistence,
    )


def get_container(request: Request) -> RecommendationContainer:
    return request.app.state.recommendations


def get_interaction_log(request: Request) -> InteractionLog:
    return get_container(request).interaction_log


def get_orchestrator(request: Request) -> RecommendationOrchestrator:
    return get_container(request).orchestrator
