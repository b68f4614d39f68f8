"""
User and follow-graph endpoints:
  GET    /api/users/{id}            - fetch a profile
  POST   /api/users/{id}/follow     - follow (idempotent)
  DELETE /api/users/{id}/follow     - unfollow
  GET    /api/users/{id}/followers  - list follower ids
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace

from connection_api.auth import get_current_user_id
from connection_api.dependencies import get_notifier, get_storage
from connection_api.notifications import Notifier, new_follower, notify
from connection_api.schemas import FollowersResponse, UserResponse
from connection_api.storage.base import RecommendationStorage

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, storage: RecommendationStorage = Depends(get_storage)):
    user = await storage.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user)


@router.post("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def follow_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
    notifier: Notifier = Depends(get_notifier),
):
    """Create a follower → followee edge; following counts as relationship 1.0 in the feed."""
    with tracer.start_as_current_span("follow_user"):
        if current_user_id == user_id:
            raise HTTPException(status_code=400, detail="Cannot follow yourself")

        followee = await storage.get_user(user_id)
        if not followee:
            raise HTTPException(status_code=404, detail=f"User {user_id} not found")

        if not await storage.follow(current_user_id, user_id):
            return  # already following
        await storage.commit()

        follower = await storage.get_user(current_user_id)
        logger.info("%s followed %s", current_user_id, user_id)
        if follower:
            await notify(notifier, new_follower(user_id, follower.username))


@router.delete("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    user_id: str,
    current_user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
):
    with tracer.start_as_current_span("unfollow_user"):
        await storage.unfollow(current_user_id, user_id)
        await storage.commit()


@router.get("/{user_id}/followers", response_model=FollowersResponse)
async def list_followers(user_id: str, storage: RecommendationStorage = Depends(get_storage)):
    return FollowersResponse(user_id=user_id, followers=await storage.list_followers(user_id))
