"""
Storage port shared by the in-memory and database implementations.

The ranker only ever sees the frozen snapshots defined here; routers use the
same types for their CRUD responses so both backends are interchangeable.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, runtime_checkable

CONTENT_TYPES = ("microblog", "community", "event")
INTERACTION_TYPES = ("view", "like", "comment", "share")

PREFERRED_TAG_LIMIT = 20
_STOP_WORDS = frozenset({"the", "and", "for", "are", "but", "not", "you", "all"})


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class UserRecord:
    id: str
    username: str
    display_name: Optional[str]
    password_hash: str
    interest_tags: tuple[str, ...] = ()
    is_verified_answerer: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class MicroblogItem:
    id: str
    author_id: str
    content: str
    created_at: datetime
    like_count: int = 0
    comment_count: int = 0
    repost_count: int = 0
    author_username: Optional[str] = None
    author_display_name: Optional[str] = None
    author_is_verified_answerer: bool = False


@dataclass(frozen=True)
class CommunityItem:
    id: str
    name: str
    description: Optional[str]
    created_at: datetime
    member_count: int = 0
    interest_tags: tuple[str, ...] = ()
    created_by: Optional[str] = None


@dataclass(frozen=True)
class UserProfile:
    id: str
    preferred_tags: frozenset[str] = frozenset()
    interest_tags: frozenset[str] = frozenset()


@dataclass(frozen=True)
class InteractionRecord:
    user_id: str
    content_id: str
    content_type: str
    interaction_type: str
    created_at: datetime
    # Author of the microblog interacted with; None for other content types
    author_id: Optional[str] = None


def derive_preferred_tags(contents: Iterable[str], limit: int = PREFERRED_TAG_LIMIT) -> frozenset[str]:
    """
    Most frequent words across the microblogs a user liked.

    Words are split on single spaces, kept verbatim, and dropped when they
    are 3 characters or shorter or a common stop word.
    """
    counts: Counter[str] = Counter()
    for content in contents:
        counts.update(word for word in content.split(" ") if word)
    ranked = [word for word, _ in counts.most_common(limit)]
    return frozenset(
        word for word in ranked if len(word) > 3 and word.lower() not in _STOP_WORDS
    )


@runtime_checkable
class RecommendationStorage(Protocol):
    """Async data access used by the routers and the feed ranker."""

    # ── Users & follow graph ───────────────────────────────────────────────
    async def create_user(
        self,
        username: str,
        password_hash: str,
        display_name: Optional[str] = None,
        interest_tags: Iterable[str] = (),
        is_verified_answerer: bool = False,
    ) -> UserRecord: ...

    async def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]: ...

    async def follow(self, follower_id: str, followee_id: str) -> bool: ...

    async def unfollow(self, follower_id: str, followee_id: str) -> None: ...

    async def list_followers(self, user_id: str) -> list[str]: ...

    # ── Microblogs ─────────────────────────────────────────────────────────
    async def create_microblog(self, author_id: str, content: str) -> MicroblogItem: ...

    async def get_microblog(self, microblog_id: str) -> Optional[MicroblogItem]: ...

    async def like_microblog(self, user_id: str, microblog_id: str) -> bool: ...

    # ── Communities ────────────────────────────────────────────────────────
    async def create_community(
        self,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        interest_tags: Iterable[str] = (),
    ) -> CommunityItem: ...

    async def get_community(self, community_id: str) -> Optional[CommunityItem]: ...

    async def get_community_by_name(self, name: str) -> Optional[CommunityItem]: ...

    async def join_community(self, community_id: str, user_id: str) -> bool: ...

    # ── Ranker inputs ──────────────────────────────────────────────────────
    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]: ...

    async def get_followed_users(self, user_id: str) -> set[str]: ...

    async def get_user_interactions(
        self, user_id: str, limit: int = 100
    ) -> list[InteractionRecord]: ...

    async def get_candidate_microblogs(self, user_id: str) -> list[MicroblogItem]: ...

    async def get_candidate_communities(self, user_id: str) -> list[CommunityItem]: ...

    async def record_interaction(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        interaction_type: str,
    ) -> InteractionRecord: ...

    async def commit(self) -> None:
        """Make this request's writes durable. Raises if they cannot be."""
        ...
