"""Postgres repositories for the recommendation feature."""

from .cache_repository import RecommendationCacheRepository
from .catalog_repository import CatalogRepository
from .interaction_repository import CourseActivityRow, InteractionRepository

__all__ = [
    "CatalogRepository",
    "CourseActivityRow",
    "InteractionRepository",
    "RecommendationCacheRepository",
]
