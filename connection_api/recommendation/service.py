"""
Personalised feed generation.

  Stage 1 │ Profile        resolve the user's tags; unknown user → empty feed
  Stage 2 │ Context        followed authors + recent interaction history
  Stage 3 │ Candidates     microblogs by others from the last 30 days,
          │                communities the user has not joined
  Stage 4 │ Ranking        FeedScorer: score, sort, diversify, cap

Interaction logging is a separate append-only write path.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from opentelemetry import trace

from connection_api.recommendation.scorer import FeedScorer, ScoredItem
from connection_api.storage.base import InteractionRecord, RecommendationStorage, utcnow
from connection_api.telemetry import FEED_CANDIDATES_TOTAL, INTERACTIONS_RECORDED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class PersonalizedFeed:
    microblogs: list[ScoredItem] = field(default_factory=list)
    communities: list[ScoredItem] = field(default_factory=list)


class RecommendationService:
    def __init__(
        self,
        storage: RecommendationStorage,
        scorer: Optional[FeedScorer] = None,
        history_limit: int = 100,
    ) -> None:
        self.storage = storage
        self.scorer = scorer or FeedScorer()
        self.history_limit = history_limit

    async def generate_personalized_feed(
        self,
        user_id: str,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> PersonalizedFeed:
        if limit < 1:
            raise ValueError("limit must be a positive integer")

        with tracer.start_as_current_span("generate_personalized_feed") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("feed.limit", limit)

            profile = await self.storage.get_user_profile(user_id)
            if profile is None:
                logger.info("No profile for user %s, returning empty feed", user_id)
                return PersonalizedFeed()

            with tracer.start_as_current_span("load_context"):
                followed = await self.storage.get_followed_users(user_id)
                history = await self.storage.get_user_interactions(user_id, self.history_limit)

            with tracer.start_as_current_span("load_candidates"):
                microblogs = await self.storage.get_candidate_microblogs(user_id)
                communities = await self.storage.get_candidate_communities(user_id)

            FEED_CANDIDATES_TOTAL.labels(kind="microblog").inc(len(microblogs))
            FEED_CANDIDATES_TOTAL.labels(kind="community").inc(len(communities))
            span.set_attribute("candidates.microblogs", len(microblogs))
            span.set_attribute("candidates.communities", len(communities))

            with tracer.start_as_current_span("rank"):
                ranked_microblogs = self.scorer.rank_microblogs(
                    microblogs, profile, followed, history, limit, now or utcnow()
                )
                ranked_communities = self.scorer.rank_communities(communities, profile, limit)

            span.set_attribute("feed.microblogs_returned", len(ranked_microblogs))
            span.set_attribute("feed.communities_returned", len(ranked_communities))
            logger.debug(
                "Feed for %s: %d/%d microblogs, %d/%d communities",
                user_id,
                len(ranked_microblogs), len(microblogs),
                len(ranked_communities), len(communities),
            )
            return PersonalizedFeed(
                microblogs=ranked_microblogs,
                communities=ranked_communities,
            )

    async def record_interaction(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        interaction_type: str,
    ) -> InteractionRecord:
        """Append one interaction row. Duplicate reports create duplicate rows."""
        with tracer.start_as_current_span("record_interaction") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("interaction.content_type", content_type)
            span.set_attribute("interaction.type", interaction_type)

            record = await self.storage.record_interaction(
                user_id, content_id, content_type, interaction_type
            )
            await self.storage.commit()
            INTERACTIONS_RECORDED_TOTAL.labels(
                content_type=content_type, interaction_type=interaction_type
            ).inc()
            return record
