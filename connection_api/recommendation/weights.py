"""
Immutable weighting tables for the feed ranker.

A ScoringConfig is handed to FeedScorer at construction; nothing here is
mutated at runtime. Build a new config with dataclasses.replace() to tune.
"""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class InteractionWeights:
    like: float = 1.0
    comment: float = 3.0
    share: float = 5.0
    save: float = 2.0
    view: float = 0.5
    follow: float = 8.0
    join_community: float = 6.0
    prayer_request: float = 4.0
    bible_study: float = 3.0


@dataclass(frozen=True)
class ContentWeights:
    """Score(P, U) = w_e*E + w_r*R + w_t*T + w_f*F"""
    engagement: float = 0.4
    relationship: float = 0.3
    topic_match: float = 0.2
    freshness: float = 0.1


@dataclass(frozen=True)
class CommunityWeights:
    engagement: float = 0.4      # member count as a popularity proxy
    similarity: float = 0.3      # tag overlap with the user's interests
    social_proof: float = 0.2
    recency: float = 0.1


FAITH_KEYWORDS = (
    "bible", "scripture", "prayer", "worship", "church", "faith", "god", "jesus",
    "christ", "holy", "spirit", "blessing", "testimony", "ministry", "gospel",
    "salvation", "grace", "christian", "biblical", "devotional", "sermon",
    "praise", "lord", "heavenly",
)

# (upper bound in hours, score); anything older scores FRESHNESS_FLOOR
FRESHNESS_STEPS = (
    (1, 1.0),
    (6, 0.9),
    (24, 0.7),
    (72, 0.4),
    (168, 0.2),
)
FRESHNESS_FLOOR = 0.05


@dataclass(frozen=True)
class ScoringConfig:
    interaction: InteractionWeights = field(default_factory=InteractionWeights)
    content: ContentWeights = field(default_factory=ContentWeights)
    community: CommunityWeights = field(default_factory=CommunityWeights)
    faith_keywords: tuple[str, ...] = FAITH_KEYWORDS

    max_items_per_author: int = 2

    relationship_followed: float = 1.0
    relationship_per_interaction: float = 0.1
    relationship_interaction_cap: float = 0.7
    relationship_stranger: float = 0.1

    topic_default: float = 0.3
    topic_per_tag: float = 0.2
    topic_per_keyword: float = 0.1
    topic_keyword_cap: float = 0.3

    trust_verified: float = 0.3
    trust_high_engagement: float = 0.1
    trust_positive_ratio: float = 0.1
    trust_cap: float = 0.5

    community_similarity_default: float = 0.3
    community_member_scale: int = 100
    community_social_proof: float = 0.3
    community_recency: float = 0.5


DEFAULT_CONFIG = ScoringConfig()
