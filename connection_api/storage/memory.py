"""
Dict-backed storage for tests and local development.

Mirrors the query semantics of DatabaseStorage (candidate windows, limits,
ordering) without a database. Not shared across processes.
"""
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from connection_api.storage.base import (
    CommunityItem,
    InteractionRecord,
    MicroblogItem,
    UserProfile,
    UserRecord,
    derive_preferred_tags,
    utcnow,
)


class InMemoryStorage:
    def __init__(
        self,
        window_days: int = 30,
        microblog_limit: int = 200,
        community_limit: int = 50,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.window_days = window_days
        self.microblog_limit = microblog_limit
        self.community_limit = community_limit
        self.clock = clock

        self.users: dict[str, UserRecord] = {}
        self.follows: set[tuple[str, str]] = set()
        self.microblogs: dict[str, MicroblogItem] = {}
        self.likes: list[tuple[str, str]] = []
        self.communities: dict[str, CommunityItem] = {}
        self.members: dict[tuple[str, str], str] = {}
        # Append-only, oldest first
        self.interactions: list[InteractionRecord] = []

    # ── Seeding helpers (tests / dev fixtures) ─────────────────────────────

    def add_microblog(self, item: MicroblogItem) -> MicroblogItem:
        self.microblogs[item.id] = item
        return item

    def add_community(self, item: CommunityItem) -> CommunityItem:
        self.communities[item.id] = item
        return item

    # ── Users & follow graph ───────────────────────────────────────────────

    async def create_user(
        self,
        username: str,
        password_hash: str,
        display_name: Optional[str] = None,
        interest_tags: Iterable[str] = (),
        is_verified_answerer: bool = False,
    ) -> UserRecord:
        user = UserRecord(
            id=str(uuid.uuid4()),
            username=username,
            display_name=display_name,
            password_hash=password_hash,
            interest_tags=tuple(interest_tags),
            is_verified_answerer=is_verified_answerer,
            created_at=self.clock(),
        )
        self.users[user.id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.username == username), None)

    async def follow(self, follower_id: str, followee_id: str) -> bool:
        edge = (follower_id, followee_id)
        if edge in self.follows:
            return False
        self.follows.add(edge)
        return True

    async def unfollow(self, follower_id: str, followee_id: str) -> None:
        self.follows.discard((follower_id, followee_id))

    async def list_followers(self, user_id: str) -> list[str]:
        return sorted(f for f, t in self.follows if t == user_id)

    # ── Microblogs ─────────────────────────────────────────────────────────

    async def create_microblog(self, author_id: str, content: str) -> MicroblogItem:
        author = self.users.get(author_id)
        item = MicroblogItem(
            id=str(uuid.uuid4()),
            author_id=author_id,
            content=content,
            created_at=self.clock(),
            author_username=author.username if author else None,
            author_display_name=author.display_name if author else None,
            author_is_verified_answerer=author.is_verified_answerer if author else False,
        )
        return self.add_microblog(item)

    async def get_microblog(self, microblog_id: str) -> Optional[MicroblogItem]:
        return self.microblogs.get(microblog_id)

    async def like_microblog(self, user_id: str, microblog_id: str) -> bool:
        if (user_id, microblog_id) in self.likes:
            return False
        item = self.microblogs[microblog_id]
        self.likes.append((user_id, microblog_id))
        self.microblogs[microblog_id] = replace(item, like_count=item.like_count + 1)
        return True

    # ── Communities ────────────────────────────────────────────────────────

    async def create_community(
        self,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        interest_tags: Iterable[str] = (),
    ) -> CommunityItem:
        item = CommunityItem(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            created_at=self.clock(),
            member_count=1,
            interest_tags=tuple(interest_tags),
            created_by=created_by,
        )
        self.members[(item.id, created_by)] = "owner"
        return self.add_community(item)

    async def get_community(self, community_id: str) -> Optional[CommunityItem]:
        return self.communities.get(community_id)

    async def get_community_by_name(self, name: str) -> Optional[CommunityItem]:
        return next((c for c in self.communities.values() if c.name == name), None)

    async def join_community(self, community_id: str, user_id: str) -> bool:
        key = (community_id, user_id)
        if key in self.members:
            return False
        item = self.communities[community_id]
        self.members[key] = "member"
        self.communities[community_id] = replace(item, member_count=item.member_count + 1)
        return True

    # ── Ranker inputs ──────────────────────────────────────────────────────

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        user = self.users.get(user_id)
        if user is None:
            return None
        liked = [
            self.microblogs[mid].content
            for uid, mid in self.likes
            if uid == user_id and mid in self.microblogs
        ]
        return UserProfile(
            id=user.id,
            preferred_tags=derive_preferred_tags(liked),
            interest_tags=frozenset(user.interest_tags),
        )

    async def get_followed_users(self, user_id: str) -> set[str]:
        return {t for f, t in self.follows if f == user_id}

    async def get_user_interactions(
        self, user_id: str, limit: int = 100
    ) -> list[InteractionRecord]:
        mine = [i for i in reversed(self.interactions) if i.user_id == user_id]
        mine.sort(key=lambda i: i.created_at, reverse=True)
        return [replace(i, author_id=self._author_of(i)) for i in mine[:limit]]

    def _author_of(self, record: InteractionRecord) -> Optional[str]:
        # Resolved on read so posts added after the interaction still count
        if record.content_type != "microblog" or record.content_id not in self.microblogs:
            return None
        return self.microblogs[record.content_id].author_id

    async def get_candidate_microblogs(self, user_id: str) -> list[MicroblogItem]:
        cutoff = self.clock() - timedelta(days=self.window_days)
        candidates = [
            m for m in self.microblogs.values()
            if m.author_id != user_id and m.created_at > cutoff
        ]
        candidates.sort(key=lambda m: m.created_at, reverse=True)
        return candidates[: self.microblog_limit]

    async def get_candidate_communities(self, user_id: str) -> list[CommunityItem]:
        joined = {cid for cid, uid in self.members if uid == user_id}
        candidates = [c for c in self.communities.values() if c.id not in joined]
        candidates.sort(key=lambda c: c.member_count, reverse=True)
        return candidates[: self.community_limit]

    async def record_interaction(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        interaction_type: str,
    ) -> InteractionRecord:
        record = InteractionRecord(
            user_id=user_id,
            content_id=content_id,
            content_type=content_type,
            interaction_type=interaction_type,
            created_at=self.clock(),
        )
        self.interactions.append(record)
        return record

    async def commit(self) -> None:
        # Writes are applied in place
        pass
