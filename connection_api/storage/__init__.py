from connection_api.storage.base import (
    CONTENT_TYPES,
    INTERACTION_TYPES,
    CommunityItem,
    InteractionRecord,
    MicroblogItem,
    RecommendationStorage,
    UserProfile,
    UserRecord,
    utcnow,
)
from connection_api.storage.memory import InMemoryStorage

__all__ = [
    "CONTENT_TYPES",
    "INTERACTION_TYPES",
    "CommunityItem",
    "InMemoryStorage",
    "InteractionRecord",
    "MicroblogItem",
    "RecommendationStorage",
    "UserProfile",
    "UserRecord",
    "utcnow",
]
