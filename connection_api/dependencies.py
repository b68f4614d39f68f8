"""
FastAPI dependencies wiring routers to storage, notifications and the
recommendation service. Tests swap these through app.dependency_overrides.
"""
from typing import AsyncIterator

from fastapi import Depends

from connection_api.config import settings
from connection_api.database import AsyncSessionLocal
from connection_api.notifications import KafkaNotifier, LogNotifier, Notifier
from connection_api.recommendation import FeedScorer, RecommendationService
from connection_api.storage.base import RecommendationStorage
from connection_api.storage.database import DatabaseStorage
from connection_api.storage.memory import InMemoryStorage

# Used when storage_backend == 'memory'; lives for the process lifetime
memory_storage = InMemoryStorage(
    window_days=settings.candidate_window_days,
    microblog_limit=settings.candidate_microblog_limit,
    community_limit=settings.candidate_community_limit,
)

kafka_notifier = KafkaNotifier()
log_notifier = LogNotifier()

feed_scorer = FeedScorer()


async def get_storage() -> AsyncIterator[RecommendationStorage]:
    """Request-scoped storage. Routes commit their own writes; errors roll back."""
    if settings.storage_backend == "memory":
        yield memory_storage
        return

    async with AsyncSessionLocal() as session:
        try:
            yield DatabaseStorage(session)
        except Exception:
            await session.rollback()
            raise


def get_notifier() -> Notifier:
    if settings.notification_backend == "kafka":
        return kafka_notifier
    return log_notifier


def get_recommendation_service(
    storage: RecommendationStorage = Depends(get_storage),
) -> RecommendationService:
    return RecommendationService(
        storage,
        scorer=feed_scorer,
        history_limit=settings.interaction_history_limit,
    )
