"""
Feed scorer: pure ranking of candidate microblogs and communities.

For each microblog candidate:

  E  engagement    log10(likes·1 + comments·3 + shares·5 + 1) / 2, clamped to [0, 1]
  R  relationship  1.0 followed author | 0.1·n capped at 0.7 for n prior
                   interactions with the author | 0.1 stranger
  T  topic match   0.2 per user tag found in the text + faith keyword bonus
                   (≤ 0.3), capped at 1.0; 0.3 when the user has no tags
  F  freshness     step decay on age in hours

  composite = 0.4E + 0.3R + 0.2T + 0.1F
  final     = composite · (1 + trust_boost)      trust_boost ≤ 0.5

Results are sorted by final score and diversified with a greedy cap of two
items per author. Communities use their own weighted sum and are capped at
limit // 3 by the caller.

Nothing here touches storage; the same inputs always give the same output.
"""
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from connection_api.recommendation.weights import (
    DEFAULT_CONFIG,
    FRESHNESS_FLOOR,
    FRESHNESS_STEPS,
    ContentWeights,
    InteractionWeights,
    ScoringConfig,
)
from connection_api.storage.base import (
    CommunityItem,
    InteractionRecord,
    MicroblogItem,
    UserProfile,
    utcnow,
)


@dataclass(frozen=True)
class ScoreBreakdown:
    engagement: float
    relationship: float
    topic_match: float
    freshness: float
    trust_boost: float


@dataclass(frozen=True)
class CommunityScoreBreakdown:
    engagement: float
    similarity: float
    social_proof: float
    recency: float


@dataclass(frozen=True)
class ScoredItem:
    item: Union[MicroblogItem, CommunityItem]
    score: float
    breakdown: Union[ScoreBreakdown, CommunityScoreBreakdown]
    reason: str

    @property
    def item_id(self) -> str:
        return self.item.id


# ─────────────────────────── Sub-scores ───────────────────────────────────

def engagement_score(
    likes: int,
    comments: int,
    shares: int = 0,
    weights: InteractionWeights = DEFAULT_CONFIG.interaction,
) -> float:
    weighted = likes * weights.like + comments * weights.comment + shares * weights.share
    return max(0.0, min(math.log10(weighted + 1) / 2, 1.0))


def relationship_score(
    author_id: str,
    followed_users: set[str],
    interactions: Sequence[InteractionRecord],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    if author_id in followed_users:
        return config.relationship_followed

    prior = sum(
        1 for i in interactions
        if i.content_type == "microblog" and i.author_id == author_id
    )
    if prior > 0:
        return min(prior * config.relationship_per_interaction, config.relationship_interaction_cap)

    return config.relationship_stranger


def topic_match_score(
    content: str,
    preferred_tags: Iterable[str],
    interest_tags: Iterable[str],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    tags = [*preferred_tags, *interest_tags]
    if not tags:
        return config.topic_default

    text = content.lower()
    score = sum(config.topic_per_tag for tag in tags if tag.lower() in text)

    keyword_hits = sum(1 for keyword in config.faith_keywords if keyword in text)
    if keyword_hits:
        score += min(keyword_hits * config.topic_per_keyword, config.topic_keyword_cap)

    return min(score, 1.0)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def freshness_score(created_at: datetime, now: Optional[datetime] = None) -> float:
    now = _naive_utc(now or utcnow())
    age_hours = (now - _naive_utc(created_at)).total_seconds() / 3600
    for upper_bound, score in FRESHNESS_STEPS:
        if age_hours < upper_bound:
            return score
    return FRESHNESS_FLOOR


def composite_score(
    engagement: float,
    relationship: float,
    topic_match: float,
    freshness: float,
    weights: ContentWeights = DEFAULT_CONFIG.content,
) -> float:
    return (
        weights.engagement * engagement
        + weights.relationship * relationship
        + weights.topic_match * topic_match
        + weights.freshness * freshness
    )


def trust_boost(microblog: MicroblogItem, config: ScoringConfig = DEFAULT_CONFIG) -> float:
    boost = 0.0
    if microblog.author_is_verified_answerer:
        boost += config.trust_verified

    if microblog.like_count + microblog.comment_count * 2 > 10:
        boost += config.trust_high_engagement

    # More likes than comments indicates positive reception
    if microblog.like_count / max(microblog.comment_count, 1) > 2:
        boost += config.trust_positive_ratio

    return min(boost, config.trust_cap)


def recommendation_reason(
    engagement: float,
    relationship: float,
    topic_match: float,
    trust: float,
) -> str:
    if relationship > 0.8:
        return "From someone you follow"
    if trust > 0.2:
        return "From verified faith leader"
    if engagement > 0.7:
        return "Highly engaging content"
    if topic_match > 0.6:
        return "Matches your interests"
    if engagement > 0.4:
        return "Popular in community"
    return "Recommended for you"


def community_similarity_score(
    community_tags: Sequence[str],
    user_tags: Sequence[str],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    if not community_tags or not user_tags:
        return config.community_similarity_default

    lowered = [t.lower() for t in user_tags]
    overlap = [tag for tag in community_tags if any(tag.lower() in u for u in lowered)]
    return min(len(overlap) / max(len(community_tags), len(user_tags)), 1.0)


def diversify(
    scored: Iterable[ScoredItem],
    key: Callable[[ScoredItem], Any],
    max_per_key: int = 2,
) -> list[ScoredItem]:
    """Greedy pass over a ranked list keeping at most ``max_per_key`` per key."""
    counts: dict[Any, int] = defaultdict(int)
    kept: list[ScoredItem] = []
    for entry in scored:
        k = key(entry)
        if counts[k] >= max_per_key:
            continue
        counts[k] += 1
        kept.append(entry)
    return kept


# ─────────────────────────── Scorer ───────────────────────────────────────

class FeedScorer:
    def __init__(self, config: ScoringConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    def score_microblog(
        self,
        microblog: MicroblogItem,
        profile: UserProfile,
        followed_users: set[str],
        interactions: Sequence[InteractionRecord],
        now: datetime,
    ) -> ScoredItem:
        cfg = self.config
        engagement = engagement_score(
            microblog.like_count,
            microblog.comment_count,
            microblog.repost_count,
            cfg.interaction,
        )
        relationship = relationship_score(microblog.author_id, followed_users, interactions, cfg)
        topic = topic_match_score(
            microblog.content, profile.preferred_tags, profile.interest_tags, cfg
        )
        freshness = freshness_score(microblog.created_at, now)
        boost = trust_boost(microblog, cfg)

        composite = composite_score(engagement, relationship, topic, freshness, cfg.content)
        return ScoredItem(
            item=microblog,
            score=composite * (1 + boost),
            breakdown=ScoreBreakdown(
                engagement=engagement,
                relationship=relationship,
                topic_match=topic,
                freshness=freshness,
                trust_boost=boost,
            ),
            reason=recommendation_reason(engagement, relationship, topic, boost),
        )

    def score_microblogs(
        self,
        microblogs: Iterable[MicroblogItem],
        profile: UserProfile,
        followed_users: set[str],
        interactions: Sequence[InteractionRecord],
        now: Optional[datetime] = None,
    ) -> list[ScoredItem]:
        now = now or utcnow()
        scored = [
            self.score_microblog(m, profile, followed_users, interactions, now)
            for m in microblogs
        ]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored

    def score_community(self, community: CommunityItem, profile: UserProfile) -> ScoredItem:
        cfg = self.config
        weights = cfg.community
        user_tags = sorted(profile.preferred_tags | profile.interest_tags)

        breakdown = CommunityScoreBreakdown(
            engagement=min(community.member_count / cfg.community_member_scale, 1.0),
            similarity=community_similarity_score(community.interest_tags, user_tags, cfg),
            social_proof=cfg.community_social_proof,
            recency=cfg.community_recency,
        )
        score = (
            weights.engagement * breakdown.engagement
            + weights.similarity * breakdown.similarity
            + weights.social_proof * breakdown.social_proof
            + weights.recency * breakdown.recency
        )
        if breakdown.similarity > 0.6:
            reason = "Matches your interests"
        elif breakdown.engagement > 0.4:
            reason = "Popular in community"
        else:
            reason = "Recommended for you"
        return ScoredItem(item=community, score=score, breakdown=breakdown, reason=reason)

    def score_communities(
        self,
        communities: Iterable[CommunityItem],
        profile: UserProfile,
    ) -> list[ScoredItem]:
        scored = [self.score_community(c, profile) for c in communities]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored

    def rank_microblogs(
        self,
        microblogs: Iterable[MicroblogItem],
        profile: UserProfile,
        followed_users: set[str],
        interactions: Sequence[InteractionRecord],
        limit: int,
        now: Optional[datetime] = None,
    ) -> list[ScoredItem]:
        scored = self.score_microblogs(microblogs, profile, followed_users, interactions, now)
        diversified = diversify(
            scored, key=lambda s: s.item.author_id, max_per_key=self.config.max_items_per_author
        )
        return diversified[:limit]

    def rank_communities(
        self,
        communities: Iterable[CommunityItem],
        profile: UserProfile,
        limit: int,
    ) -> list[ScoredItem]:
        scored = self.score_communities(communities, profile)
        # Communities have no author, so the cap is keyed by community id
        diversified = diversify(
            scored, key=lambda s: s.item.id, max_per_key=self.config.max_items_per_author
        )
        return diversified[: limit // 3]
