from .cache import RecommendationCache
from .interaction_log import InteractionLog
from .merger import merge
from .orchestrator import RecommendationOrchestrator
from .persistence_worker import CachePersistenceWorker, PersistBatch

__all__ = [
    "CachePersistenceWorker",
    "InteractionLog",
    "PersistBatch",
    "RecommendationCache",
    "RecommendationOrchestrator",
    "merge",
]
