"""
Strategy computers.

Each strategy independently scores courses for a user; the orchestrator
runs one of them, or all of them concurrently for hybrid requests.
"""

from .base import RecommendationStrategy
from .cold_start import ColdStartStrategy
from .collaborative import CollaborativeStrategy
from .content_based import ContentBasedStrategy
from .personalized import PersonalizedStrategy
from .trending import TrendingStrategy

__all__ = [
    "ColdStartStrategy",
    "CollaborativeStrategy",
    "ContentBasedStrategy",
    "PersonalizedStrategy",
    "RecommendationStrategy",
    "TrendingStrategy",
]
