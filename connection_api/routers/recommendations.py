"""
Recommendation endpoints:
  GET  /api/recommendations/feed         - ranked microblogs + communities
  POST /api/recommendations/interaction  - append to the interaction log

Both require a session. Unexpected failures are caught here, logged and
returned as a generic 500; the ranker itself never raises for "no data".
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, status

from connection_api.auth import get_current_user_id
from connection_api.config import settings
from connection_api.dependencies import get_recommendation_service
from connection_api.recommendation import RecommendationService
from connection_api.schemas import (
    FeedData,
    FeedResponse,
    InteractionRequest,
    RecommendedCommunity,
    RecommendedMicroblog,
    SuccessResponse,
)
from connection_api.telemetry import FEED_LATENCY, RECOMMENDATION_ERRORS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    user_id: str = Depends(get_current_user_id),
    limit: int = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    start_time = time.perf_counter()
    try:
        feed = await service.generate_personalized_feed(user_id, limit)
    except Exception:
        logger.exception("Failed to generate feed for user %s", user_id)
        RECOMMENDATION_ERRORS_TOTAL.labels(operation="feed").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate recommendations",
        )
    FEED_LATENCY.observe(time.perf_counter() - start_time)

    return FeedResponse(
        data=FeedData(
            microblogs=[RecommendedMicroblog.from_scored(s) for s in feed.microblogs],
            communities=[RecommendedCommunity.from_scored(s) for s in feed.communities],
        )
    )


@router.post("/interaction", response_model=SuccessResponse)
async def record_interaction(
    body: InteractionRequest,
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Fire-and-forget interaction report. No idempotency: repeats append again."""
    try:
        await service.record_interaction(
            user_id, body.content_id, body.content_type, body.interaction_type
        )
    except Exception:
        logger.exception("Failed to record interaction for user %s", user_id)
        RECOMMENDATION_ERRORS_TOTAL.labels(operation="interaction").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record interaction",
        )
    return SuccessResponse()
