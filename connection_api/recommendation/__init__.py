from connection_api.recommendation.scorer import (
    CommunityScoreBreakdown,
    FeedScorer,
    ScoreBreakdown,
    ScoredItem,
)
from connection_api.recommendation.service import PersonalizedFeed, RecommendationService
from connection_api.recommendation.weights import DEFAULT_CONFIG, ScoringConfig

__all__ = [
    "CommunityScoreBreakdown",
    "DEFAULT_CONFIG",
    "FeedScorer",
    "PersonalizedFeed",
    "RecommendationService",
    "ScoreBreakdown",
    "ScoredItem",
    "ScoringConfig",
]
