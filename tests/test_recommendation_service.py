import asyncio
from datetime import timedelta

import pytest

from connection_api.recommendation import RecommendationService
from connection_api.storage.base import MicroblogItem
from connection_api.storage.memory import InMemoryStorage

from tests.conftest import NOW


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def seeded():
    storage = InMemoryStorage(clock=lambda: NOW)
    me = run(storage.create_user("me", "hash", interest_tags=["worship"]))
    friend = run(storage.create_user("friend", "hash"))
    stranger = run(storage.create_user("stranger", "hash"))
    run(storage.follow(me.id, friend.id))

    for i in range(4):
        storage.add_microblog(
            MicroblogItem(f"f{i}", friend.id, f"friend post {i}", NOW - timedelta(hours=i + 2))
        )
        storage.add_microblog(
            MicroblogItem(f"s{i}", stranger.id, f"stranger post {i}", NOW - timedelta(hours=i + 2))
        )
    for i in range(7):
        run(storage.create_community(f"Community {i}", stranger.id))
    return storage, me


def test_unknown_user_gets_empty_feed(seeded):
    storage, _ = seeded
    feed = run(RecommendationService(storage).generate_personalized_feed("ghost"))
    assert feed.microblogs == []
    assert feed.communities == []


def test_feed_ranks_followed_author_first_and_caps(seeded):
    storage, me = seeded
    feed = run(RecommendationService(storage).generate_personalized_feed(me.id, limit=10, now=NOW))

    ids = [s.item_id for s in feed.microblogs]
    assert ids[:2] == ["f0", "f1"]
    assert len(ids) == 4  # two per author survive diversification
    assert len(feed.communities) == 3


def test_feed_limit_must_be_positive(seeded):
    storage, me = seeded
    with pytest.raises(ValueError):
        run(RecommendationService(storage).generate_personalized_feed(me.id, limit=0))


def test_feed_does_not_mutate_storage(seeded):
    storage, me = seeded
    before = (dict(storage.microblogs), list(storage.interactions))
    run(RecommendationService(storage).generate_personalized_feed(me.id, now=NOW))
    assert (dict(storage.microblogs), list(storage.interactions)) == before


def test_interactions_raise_relationship_for_author(seeded):
    storage, me = seeded
    service = RecommendationService(storage)
    for _ in range(5):
        run(service.record_interaction(me.id, "s0", "microblog", "like"))

    assert len(storage.interactions) == 5

    feed = run(service.generate_personalized_feed(me.id, limit=10, now=NOW))
    stranger_items = [s for s in feed.microblogs if s.item_id.startswith("s")]
    assert len(stranger_items) == 2
    for scored in stranger_items:
        assert scored.breakdown.relationship == pytest.approx(0.5)
