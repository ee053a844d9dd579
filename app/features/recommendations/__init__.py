"""
Course recommendation feature package.

Every layer of the recommendation flow lives here: domain models,
repositories, strategy computers, services (cache, merger, orchestrator,
background persistence) and the HTTP router.
"""

from .api.router import router as recommendations_router  # noqa: F401
from .dependencies import RecommendationContainer, build_container  # noqa: F401
