"""
Microblog endpoints:
  POST /api/microblogs            - publish a microblog
  GET  /api/microblogs/{id}       - fetch one
  POST /api/microblogs/{id}/like  - like (idempotent)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace

from connection_api.auth import get_current_user_id
from connection_api.dependencies import get_notifier, get_storage
from connection_api.notifications import Notifier, microblog_liked, notify
from connection_api.schemas import MicroblogCreate, MicroblogResponse
from connection_api.storage.base import RecommendationStorage

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post("", response_model=MicroblogResponse, status_code=status.HTTP_201_CREATED)
async def create_microblog(
    body: MicroblogCreate,
    current_user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
):
    with tracer.start_as_current_span("create_microblog") as span:
        if not await storage.get_user(current_user_id):
            raise HTTPException(status_code=404, detail="Author not found")

        microblog = await storage.create_microblog(current_user_id, body.content)
        await storage.commit()
        span.set_attribute("microblog.id", microblog.id)
        logger.info("Microblog created: %s by user %s", microblog.id, current_user_id)
        return MicroblogResponse.model_validate(microblog)


@router.get("/{microblog_id}", response_model=MicroblogResponse)
async def get_microblog(microblog_id: str, storage: RecommendationStorage = Depends(get_storage)):
    microblog = await storage.get_microblog(microblog_id)
    if not microblog:
        raise HTTPException(status_code=404, detail="Microblog not found")
    return MicroblogResponse.model_validate(microblog)


@router.post("/{microblog_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def like_microblog(
    microblog_id: str,
    current_user_id: str = Depends(get_current_user_id),
    storage: RecommendationStorage = Depends(get_storage),
    notifier: Notifier = Depends(get_notifier),
):
    """Like a microblog. Liked text feeds the user's preferred tags."""
    with tracer.start_as_current_span("like_microblog"):
        microblog = await storage.get_microblog(microblog_id)
        if not microblog:
            raise HTTPException(status_code=404, detail="Microblog not found")

        if not await storage.like_microblog(current_user_id, microblog_id):
            return  # already liked
        await storage.commit()

        liker = await storage.get_user(current_user_id)
        if liker and microblog.author_id != current_user_id:
            await notify(notifier, microblog_liked(microblog.author_id, liker.username, microblog_id))
