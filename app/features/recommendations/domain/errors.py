"""Error taxonomy for the recommendation feature."""


class RecommendationServiceError(Exception):
    """Base class for recommendation feature errors."""

    def __init__(self, message: str, *, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class InvalidArgumentError(RecommendationServiceError):
    """Malformed input; rejected before anything is written."""


class NotFoundError(RecommendationServiceError):
    """A referenced user or course does not exist."""


class UnauthorizedError(RecommendationServiceError):
    """No valid caller identity."""


class StrategyTimeoutError(RecommendationServiceError):
    """A strategy exceeded its time budget. Never surfaced to callers."""

    def __init__(self, strategy: str, timeout_s: float):
        super().__init__(f"Strategy {strategy} timed out after {timeout_s}s", recoverable=True)
        self.strategy = strategy
        self.timeout_s = timeout_s


class PersistFailureError(RecommendationServiceError):
    """Writing computed recommendations to the cache failed. Never surfaced."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=True)
