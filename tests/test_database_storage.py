import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from connection_api import models
from connection_api.config import settings
from connection_api.database import Base
from connection_api.storage.base import utcnow
from connection_api.storage.database import DatabaseStorage


@pytest.fixture
def run_scenario(tmp_path):
    """Run ``scenario(storage, session)`` against a fresh SQLite database."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'connection.db'}"

    async def _run(scenario):
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        sessions = async_sessionmaker(engine, expire_on_commit=False)
        try:
            async with sessions() as session:
                return await scenario(DatabaseStorage(session), session)
        finally:
            await engine.dispose()

    return lambda scenario: asyncio.run(_run(scenario))


async def add_post(session, microblog_id, author_id, age, content="post"):
    session.add(
        models.Microblog(
            microblog_id=microblog_id,
            author_id=author_id,
            content=content,
            created_at=utcnow() - age,
        )
    )
    await session.flush()


def test_interactions_resolve_author_through_join(run_scenario):
    async def scenario(storage, session):
        me = await storage.create_user("me", "hash")
        author = await storage.create_user("author", "hash")
        post = await storage.create_microblog(author.id, "Morning devotional")

        await storage.record_interaction(me.id, post.id, "microblog", "view")
        await storage.record_interaction(me.id, post.id, "community", "view")
        await storage.record_interaction(me.id, "later", "microblog", "like")
        return me, author, post, await storage.get_user_interactions(me.id)

    me, author, post, history = run_scenario(scenario)
    assert [(h.content_id, h.content_type) for h in history] == [
        ("later", "microblog"),
        (post.id, "community"),
        (post.id, "microblog"),
    ]
    assert [h.author_id for h in history] == [None, None, author.id]
    assert all(h.user_id == me.id for h in history)


def test_interaction_author_resolved_when_post_arrives_later(run_scenario):
    async def scenario(storage, session):
        me = await storage.create_user("me", "hash")
        author = await storage.create_user("author", "hash")
        await storage.record_interaction(me.id, "late-post", "microblog", "view")
        before = await storage.get_user_interactions(me.id)

        await add_post(session, "late-post", author.id, timedelta(0))
        after = await storage.get_user_interactions(me.id)
        return author, before, after

    author, before, after = run_scenario(scenario)
    assert before[0].author_id is None
    assert after[0].author_id == author.id


def test_interactions_limit_and_duplicates(run_scenario):
    async def scenario(storage, session):
        me = await storage.create_user("me", "hash")
        for _ in range(4):
            await storage.record_interaction(me.id, "c1", "community", "view")
        rows = await session.scalar(select(func.count()).select_from(models.UserInteraction))
        return rows, await storage.get_user_interactions(me.id, limit=3)

    rows, history = run_scenario(scenario)
    assert rows == 4
    assert len(history) == 3


def test_candidate_microblogs_window_order_and_limit(run_scenario, monkeypatch):
    monkeypatch.setattr(settings, "candidate_microblog_limit", 2)

    async def scenario(storage, session):
        me = await storage.create_user("me", "hash")
        other = await storage.create_user("other", "hash")
        await add_post(session, "mine", me.id, timedelta(hours=1))
        await add_post(session, "stale", other.id, timedelta(days=31))
        await add_post(session, "older", other.id, timedelta(hours=5))
        await add_post(session, "recent", other.id, timedelta(hours=2))
        await add_post(session, "newest", other.id, timedelta(minutes=5))
        return await storage.get_candidate_microblogs(me.id)

    candidates = run_scenario(scenario)
    assert [m.id for m in candidates] == ["newest", "recent"]
    assert candidates[0].author_username == "other"


def test_candidate_communities_exclude_joined_and_respect_limit(run_scenario, monkeypatch):
    monkeypatch.setattr(settings, "candidate_community_limit", 2)

    async def scenario(storage, session):
        me = await storage.create_user("me", "hash")
        owner = await storage.create_user("owner", "hash")
        small = await storage.create_community("Small group", owner.id)
        big = await storage.create_community("Big group", owner.id)
        await storage.create_community("Medium group", owner.id)
        joined = await storage.create_community("Joined group", owner.id)
        mine = await storage.create_community("My group", me.id)

        await storage.join_community(joined.id, me.id)
        for i in range(3):
            user = await storage.create_user(f"u{i}", "hash")
            await storage.join_community(big.id, user.id)
            await storage.join_community(joined.id, user.id)
        return big, small, joined, mine, await storage.get_candidate_communities(me.id)

    big, small, joined, mine, candidates = run_scenario(scenario)
    assert len(candidates) == 2
    assert candidates[0].id == big.id
    assert candidates[0].member_count == 4
    assert {joined.id, mine.id}.isdisjoint(c.id for c in candidates)


def test_like_and_join_are_idempotent(run_scenario):
    async def scenario(storage, session):
        owner = await storage.create_user("owner", "hash")
        fan = await storage.create_user("fan", "hash")
        post = await storage.create_microblog(owner.id, "Worship night recap")
        community = await storage.create_community("Worship Leaders", owner.id)

        likes = [await storage.like_microblog(fan.id, post.id) for _ in range(2)]
        joins = [await storage.join_community(community.id, fan.id) for _ in range(2)]
        return (
            likes,
            joins,
            await storage.get_microblog(post.id),
            await storage.get_community(community.id),
        )

    likes, joins, post, community = run_scenario(scenario)
    assert likes == [True, False]
    assert joins == [True, False]
    assert post.like_count == 1
    assert community.member_count == 2


def test_profile_and_follow_graph(run_scenario):
    async def scenario(storage, session):
        me = await storage.create_user("me", "hash", interest_tags=["worship"])
        friend = await storage.create_user("friend", "hash")
        post = await storage.create_microblog(friend.id, "prayer meeting tonight")
        await storage.like_microblog(me.id, post.id)

        assert await storage.follow(me.id, friend.id) is True
        assert await storage.follow(me.id, friend.id) is False
        followed = await storage.get_followed_users(me.id)
        followers = await storage.list_followers(friend.id)
        await storage.unfollow(me.id, friend.id)
        return (
            me,
            friend,
            followed,
            followers,
            await storage.get_followed_users(me.id),
            await storage.get_user_profile(me.id),
            await storage.get_user_profile("missing"),
        )

    me, friend, followed, followers, after_unfollow, profile, missing = run_scenario(scenario)
    assert followed == {friend.id}
    assert followers == [me.id]
    assert after_unfollow == set()
    assert profile.interest_tags == frozenset({"worship"})
    assert profile.preferred_tags == frozenset({"prayer", "meeting", "tonight"})
    assert missing is None


def test_duplicate_username_violates_unique_constraint(run_scenario):
    async def scenario(storage, session):
        await storage.create_user("silas", "hash")
        with pytest.raises(IntegrityError):
            await storage.create_user("silas", "hash")

    run_scenario(scenario)


def test_commit_makes_writes_visible_to_new_sessions(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'connection.db'}"

    async def scenario():
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        sessions = async_sessionmaker(engine, expire_on_commit=False)
        try:
            async with sessions() as session:
                storage = DatabaseStorage(session)
                user = await storage.create_user("kept", "hash")
                await storage.commit()
                await storage.create_user("dropped", "hash")
                await session.rollback()

            async with sessions() as session:
                storage = DatabaseStorage(session)
                return (
                    await storage.get_user(user.id),
                    await storage.get_user_by_username("dropped"),
                )
        finally:
            await engine.dispose()

    kept, dropped = asyncio.run(scenario())
    assert kept.username == "kept"
    assert dropped is None
