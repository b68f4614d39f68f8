"""
Community endpoints:
  POST /api/communities            - create; the creator joins as owner
  GET  /api/communities/{id}       - fetch one
  POST /api/communities/{id}/join  - join (idempotent)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from connection_api.auth import get_current_user_id
from connection_api.dependencies import get_storage
from connection_api.schemas import CommunityCreate, CommunityResponse
from connection_api.storage.base import RecommendationStorage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    body: CommunityCreate,
    current_user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
):
    if await storage.get_community_by_name(body.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Community '{body.name}' already exists",
        )

    try:
        community = await storage.create_community(
            name=body.name,
            created_by=current_user_id,
            description=body.description,
            interest_tags=body.interest_tags,
        )
        await storage.commit()
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Community '{body.name}' already exists",
        )
    logger.info("Community created: %s by user %s", community.id, current_user_id)
    return CommunityResponse.model_validate(community)


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(community_id: str, storage: RecommendationStorage = Depends(get_storage)):
    community = await storage.get_community(community_id)
    if not community:
        raise HTTPException(status_code=404, detail="Community not found")
    return CommunityResponse.model_validate(community)


@router.post("/{community_id}/join", status_code=status.HTTP_204_NO_CONTENT)
async def join_community(
    community_id: str,
    current_user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
):
    if not await storage.get_community(community_id):
        raise HTTPException(status_code=404, detail="Community not found")
    if await storage.join_community(community_id, current_user_id):
        await storage.commit()
        logger.info("%s joined community %s", current_user_id, community_id)
