"""
SQLAlchemy-backed storage used in production.

One DatabaseStorage wraps one request-scoped AsyncSession. Write routes call
commit() before they respond; the dependency rolls back anything left over.
"""
import logging
from datetime import timedelta
from typing import Iterable, Optional

from sqlalchemy import delete, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from connection_api.config import settings
from connection_api.models import (
    Community,
    CommunityMember,
    Follow,
    Microblog,
    MicroblogLike,
    User,
    UserInteraction,
)
from connection_api.storage.base import (
    CommunityItem,
    InteractionRecord,
    MicroblogItem,
    UserProfile,
    UserRecord,
    derive_preferred_tags,
    utcnow,
)

logger = logging.getLogger(__name__)


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.user_id,
        username=user.username,
        display_name=user.display_name,
        password_hash=user.password_hash,
        interest_tags=tuple(user.interest_tags or ()),
        is_verified_answerer=bool(user.is_verified_answerer),
        created_at=user.created_at,
    )


def _microblog_item(microblog: Microblog) -> MicroblogItem:
    author = microblog.author
    return MicroblogItem(
        id=microblog.microblog_id,
        author_id=microblog.author_id,
        content=microblog.content,
        created_at=microblog.created_at,
        like_count=microblog.like_count or 0,
        comment_count=microblog.reply_count or 0,
        repost_count=microblog.repost_count or 0,
        author_username=author.username if author else None,
        author_display_name=author.display_name if author else None,
        author_is_verified_answerer=bool(author.is_verified_answerer) if author else False,
    )


def _community_item(community: Community) -> CommunityItem:
    return CommunityItem(
        id=community.community_id,
        name=community.name,
        description=community.description,
        created_at=community.created_at,
        member_count=community.member_count or 0,
        interest_tags=tuple(community.interest_tags or ()),
        created_by=community.created_by,
    )


class DatabaseStorage:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Users & follow graph ───────────────────────────────────────────────

    async def create_user(
        self,
        username: str,
        password_hash: str,
        display_name: Optional[str] = None,
        interest_tags: Iterable[str] = (),
        is_verified_answerer: bool = False,
    ) -> UserRecord:
        user = User(
            username=username,
            display_name=display_name,
            password_hash=password_hash,
            interest_tags=list(interest_tags),
            is_verified_answerer=is_verified_answerer,
            created_at=utcnow(),
        )
        self.session.add(user)
        await self.session.flush()   # materialise user_id
        return _user_record(user)

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = await self.session.get(User, user_id)
        return _user_record(user) if user else None

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        result = await self.session.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        return _user_record(user) if user else None

    async def follow(self, follower_id: str, followee_id: str) -> bool:
        existing = await self.session.get(Follow, (follower_id, followee_id))
        if existing:
            return False
        self.session.add(
            Follow(follower_id=follower_id, followee_id=followee_id, created_at=utcnow())
        )
        await self.session.flush()
        return True

    async def unfollow(self, follower_id: str, followee_id: str) -> None:
        await self.session.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.followee_id == followee_id,
            )
        )

    async def list_followers(self, user_id: str) -> list[str]:
        rows = await self.session.execute(
            select(Follow.follower_id)
            .where(Follow.followee_id == user_id)
            .order_by(Follow.follower_id)
        )
        return [r[0] for r in rows.all()]

    # ── Microblogs ─────────────────────────────────────────────────────────

    async def create_microblog(self, author_id: str, content: str) -> MicroblogItem:
        microblog = Microblog(author_id=author_id, content=content, created_at=utcnow())
        self.session.add(microblog)
        await self.session.flush()
        await self.session.refresh(microblog, attribute_names=["author"])
        return _microblog_item(microblog)

    async def get_microblog(self, microblog_id: str) -> Optional[MicroblogItem]:
        microblog = await self.session.get(Microblog, microblog_id)
        return _microblog_item(microblog) if microblog else None

    async def like_microblog(self, user_id: str, microblog_id: str) -> bool:
        existing = await self.session.get(MicroblogLike, (user_id, microblog_id))
        if existing:
            return False
        self.session.add(
            MicroblogLike(user_id=user_id, microblog_id=microblog_id, created_at=utcnow())
        )
        await self.session.execute(
            update(Microblog)
            .where(Microblog.microblog_id == microblog_id)
            .values(like_count=Microblog.like_count + 1)
        )
        await self.session.flush()
        return True

    # ── Communities ────────────────────────────────────────────────────────

    async def create_community(
        self,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        interest_tags: Iterable[str] = (),
    ) -> CommunityItem:
        community = Community(
            name=name,
            description=description,
            interest_tags=list(interest_tags),
            member_count=1,
            created_by=created_by,
            created_at=utcnow(),
        )
        self.session.add(community)
        await self.session.flush()
        self.session.add(
            CommunityMember(
                community_id=community.community_id,
                user_id=created_by,
                role="owner",
                joined_at=utcnow(),
            )
        )
        await self.session.flush()
        return _community_item(community)

    async def get_community(self, community_id: str) -> Optional[CommunityItem]:
        community = await self.session.get(Community, community_id)
        return _community_item(community) if community else None

    async def get_community_by_name(self, name: str) -> Optional[CommunityItem]:
        result = await self.session.execute(select(Community).where(Community.name == name))
        community = result.scalar_one_or_none()
        return _community_item(community) if community else None

    async def join_community(self, community_id: str, user_id: str) -> bool:
        existing = await self.session.get(CommunityMember, (community_id, user_id))
        if existing:
            return False
        self.session.add(
            CommunityMember(community_id=community_id, user_id=user_id, joined_at=utcnow())
        )
        await self.session.execute(
            update(Community)
            .where(Community.community_id == community_id)
            .values(member_count=Community.member_count + 1)
        )
        await self.session.flush()
        return True

    # ── Ranker inputs ──────────────────────────────────────────────────────

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        user = await self.session.get(User, user_id)
        if user is None:
            return None

        # Word counting happens in Python; MySQL has no string_to_array/unnest
        rows = await self.session.execute(
            select(Microblog.content)
            .join(MicroblogLike, MicroblogLike.microblog_id == Microblog.microblog_id)
            .where(MicroblogLike.user_id == user_id)
        )
        return UserProfile(
            id=user.user_id,
            preferred_tags=derive_preferred_tags(r[0] for r in rows.all()),
            interest_tags=frozenset(user.interest_tags or ()),
        )

    async def get_followed_users(self, user_id: str) -> set[str]:
        rows = await self.session.execute(
            select(Follow.followee_id).where(Follow.follower_id == user_id)
        )
        return {r[0] for r in rows.all()}

    async def get_user_interactions(
        self, user_id: str, limit: int = 100
    ) -> list[InteractionRecord]:
        # Outer join resolves the author of microblog interactions
        rows = await self.session.execute(
            select(UserInteraction, Microblog.author_id)
            .outerjoin(
                Microblog,
                (UserInteraction.content_type == "microblog")
                & (Microblog.microblog_id == UserInteraction.content_id),
            )
            .where(UserInteraction.user_id == user_id)
            .order_by(desc(UserInteraction.created_at), desc(UserInteraction.interaction_id))
            .limit(limit)
        )
        return [
            InteractionRecord(
                user_id=row.user_id,
                content_id=row.content_id,
                content_type=row.content_type,
                interaction_type=row.interaction_type,
                created_at=row.created_at,
                author_id=author_id,
            )
            for row, author_id in rows.all()
        ]

    async def get_candidate_microblogs(self, user_id: str) -> list[MicroblogItem]:
        cutoff = utcnow() - timedelta(days=settings.candidate_window_days)
        rows = await self.session.execute(
            select(Microblog)
            .where(Microblog.author_id != user_id, Microblog.created_at > cutoff)
            .order_by(desc(Microblog.created_at))
            .limit(settings.candidate_microblog_limit)
        )
        return [_microblog_item(m) for m in rows.scalars().unique().all()]

    async def get_candidate_communities(self, user_id: str) -> list[CommunityItem]:
        joined = select(CommunityMember.community_id).where(CommunityMember.user_id == user_id)
        rows = await self.session.execute(
            select(Community)
            .where(Community.community_id.not_in(joined))
            .order_by(desc(Community.member_count))
            .limit(settings.candidate_community_limit)
        )
        return [_community_item(c) for c in rows.scalars().all()]

    async def record_interaction(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        interaction_type: str,
    ) -> InteractionRecord:
        row = UserInteraction(
            user_id=user_id,
            content_id=content_id,
            content_type=content_type,
            interaction_type=interaction_type,
            created_at=utcnow(),
        )
        self.session.add(row)
        await self.session.flush()
        logger.debug(
            "Recorded %s/%s interaction for user %s", content_type, interaction_type, user_id
        )
        return InteractionRecord(
            user_id=user_id,
            content_id=content_id,
            content_type=content_type,
            interaction_type=interaction_type,
            created_at=row.created_at,
        )

    async def commit(self) -> None:
        await self.session.commit()
