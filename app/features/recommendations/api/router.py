"""
Recommendation routes.

Usage:
    1. POST /interactions - Record a view/review/favorite/search on a course
    2. GET /recommendations - Ranked course suggestions for the caller
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import auth_dependency, require_user_id
from app.features.recommendations.api.schemas import (
    InteractionOut,
    RecommendationItem,
    RecommendationsResponse,
    RecordInteractionRequest,
    RecordInteractionResponse,
)
from app.features.recommendations.dependencies import get_interaction_log, get_orchestrator
from app.features.recommendations.domain.errors import (
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from app.features.recommendations.services import InteractionLog, RecommendationOrchestrator
from app.infrastructure.observability.logging import get_logger

router = APIRouter(tags=["recommendations"])
logger = get_logger(__name__)


@router.post("/interactions", response_model=RecordInteractionResponse)
async def record_interaction(
    request: RecordInteractionRequest,
    claims: dict = Depends(auth_dependency),
    interaction_log: InteractionLog = Depends(get_interaction_log),
):
    """
    Record one interaction for the authenticated user.

    Raises:
        400: Missing courseId, unknown type or negative weight
        401: Invalid authentication token
        404: Course (or user) not found
    """
    user_id = require_user_id(claims)

    try:
        event = await interaction_log.record(
            user_id=user_id,
            course_id=request.course_id,
            interaction_type=request.type,
            weight=request.weight,
        )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except NotFoundError as e:
        logger.warning("Interaction target not found", user_id=user_id, course_id=request.course_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    return RecordInteractionResponse(success=True, interaction=InteractionOut.from_event(event))


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    type: str = Query("all", description="all | collaborative | content | trending | personalized"),
    limit: str | None = Query(None, description="Maximum items, capped at 50"),
    use_cache: bool = Query(True, alias="useCache"),
    claims: dict = Depends(auth_dependency),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
):
    """
    Ranked course recommendations for the authenticated user.

    Raises:
        400: Unknown type or a limit that is not a positive integer
        401: Invalid authentication token
    """
    user_id = require_user_id(claims)

    try:
        result = await orchestrator.get_recommendations(
            user_id,
            type,
            limit,
            use_cache=use_cache,
            email=claims.get("email"),
        )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except UnauthorizedError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message) from e

    return RecommendationsResponse(
        recommendations=[RecommendationItem.from_domain(item) for item in result.items],
        cached=result.cached,
    )
