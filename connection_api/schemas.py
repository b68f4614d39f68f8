"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from connection_api.recommendation.scorer import ScoredItem


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ──────────────────────────── Auth / Users ────────────────────────────────

class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=255)
    interest_tags: list[str] = Field(default_factory=list, max_length=20)


class LoginRequest(CamelModel):
    username: str
    password: str


class UserResponse(CamelModel):
    id: str
    username: str
    display_name: Optional[str]
    interest_tags: list[str]
    is_verified_answerer: bool
    created_at: datetime


class FollowersResponse(CamelModel):
    user_id: str
    followers: list[str]


# ──────────────────────────── Microblogs ──────────────────────────────────

class MicroblogCreate(CamelModel):
    content: str = Field(..., min_length=1, max_length=2000)


class MicroblogResponse(CamelModel):
    id: str
    author_id: str
    author_username: Optional[str] = None
    author_display_name: Optional[str] = None
    content: str
    like_count: int
    comment_count: int
    repost_count: int
    created_at: datetime


# ──────────────────────────── Communities ─────────────────────────────────

class CommunityCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    interest_tags: list[str] = Field(default_factory=list, max_length=20)


class CommunityResponse(CamelModel):
    id: str
    name: str
    description: Optional[str]
    interest_tags: list[str]
    member_count: int
    created_by: Optional[str]
    created_at: datetime


# ──────────────────────────── Recommendations ─────────────────────────────

class ScoreBreakdownResponse(CamelModel):
    engagement: float
    relationship: float
    topic_match: float
    freshness: float
    trust_boost: float


class CommunityScoreBreakdownResponse(CamelModel):
    engagement: float
    similarity: float
    social_proof: float
    recency: float


class RecommendedMicroblog(MicroblogResponse):
    score: float
    score_breakdown: ScoreBreakdownResponse
    reason: str

    @classmethod
    def from_scored(cls, scored: ScoredItem) -> "RecommendedMicroblog":
        return cls(
            **MicroblogResponse.model_validate(scored.item).model_dump(),
            score=scored.score,
            score_breakdown=ScoreBreakdownResponse.model_validate(scored.breakdown),
            reason=scored.reason,
        )


class RecommendedCommunity(CommunityResponse):
    score: float
    score_breakdown: CommunityScoreBreakdownResponse
    reason: str

    @classmethod
    def from_scored(cls, scored: ScoredItem) -> "RecommendedCommunity":
        return cls(
            **CommunityResponse.model_validate(scored.item).model_dump(),
            score=scored.score,
            score_breakdown=CommunityScoreBreakdownResponse.model_validate(scored.breakdown),
            reason=scored.reason,
        )


class FeedData(CamelModel):
    microblogs: list[RecommendedMicroblog]
    communities: list[RecommendedCommunity]


class FeedResponse(CamelModel):
    success: bool = True
    data: FeedData
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InteractionRequest(CamelModel):
    content_id: str = Field(..., min_length=1, max_length=36)
    content_type: Literal["microblog", "community", "event"]
    interaction_type: Literal["view", "like", "comment", "share"]

    @field_validator("content_id", mode="before")
    @classmethod
    def _coerce_numeric_id(cls, value):
        # Older clients send numeric ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class SuccessResponse(CamelModel):
    success: bool = True
