import dataclasses
from datetime import timedelta

import pytest

from connection_api.recommendation.scorer import (
    FeedScorer,
    ScoredItem,
    community_similarity_score,
    composite_score,
    diversify,
    engagement_score,
    freshness_score,
    relationship_score,
    topic_match_score,
    trust_boost,
)
from connection_api.recommendation.weights import DEFAULT_CONFIG
from connection_api.storage.base import (
    CommunityItem,
    InteractionRecord,
    MicroblogItem,
    UserProfile,
)

from tests.conftest import NOW


def microblog(id, author_id="author", hours_old=1.5, likes=0, comments=0, reposts=0,
              content="hello there", verified=False):
    return MicroblogItem(
        id=id,
        author_id=author_id,
        content=content,
        created_at=NOW - timedelta(hours=hours_old),
        like_count=likes,
        comment_count=comments,
        repost_count=reposts,
        author_is_verified_answerer=verified,
    )


def interaction(author_id, content_type="microblog"):
    return InteractionRecord(
        user_id="me",
        content_id="x",
        content_type=content_type,
        interaction_type="like",
        created_at=NOW,
        author_id=author_id if content_type == "microblog" else None,
    )


PROFILE = UserProfile(id="me")


def test_engagement_score_is_zero_without_activity():
    assert engagement_score(0, 0, 0) == 0.0


def test_engagement_score_is_monotonic_and_bounded():
    for grow in (lambda n: (n, 0, 0), lambda n: (0, n, 0), lambda n: (0, 0, n)):
        scores = [engagement_score(*grow(n)) for n in (0, 1, 5, 20, 100, 10_000, 10**9)]
        assert scores == sorted(scores)
        assert all(0.0 <= s <= 1.0 for s in scores)
    assert engagement_score(10**9, 10**9, 10**9) == 1.0


def test_engagement_weights_comments_and_shares_higher():
    # 1 comment == 3 likes, 1 share == 5 likes
    assert engagement_score(0, 1, 0) == pytest.approx(engagement_score(3, 0, 0))
    assert engagement_score(0, 0, 1) == pytest.approx(engagement_score(5, 0, 0))


@pytest.mark.parametrize(
    "hours, expected",
    [(0, 1.0), (0.5, 1.0), (3, 0.9), (12, 0.7), (48, 0.4), (100, 0.2), (200, 0.05), (24 * 29, 0.05)],
)
def test_freshness_steps(hours, expected):
    assert freshness_score(NOW - timedelta(hours=hours), NOW) == expected


def test_freshness_is_non_increasing_with_age():
    ages = [0, 0.99, 1, 5.9, 6, 23.9, 24, 71.9, 72, 167.9, 168, 500]
    scores = [freshness_score(NOW - timedelta(hours=h), NOW) for h in ages]
    assert scores == sorted(scores, reverse=True)


def test_composite_is_exact_weighted_sum():
    e, r, t, f = 0.37, 0.6, 0.25, 0.9
    assert composite_score(e, r, t, f) == pytest.approx(0.4 * e + 0.3 * r + 0.2 * t + 0.1 * f)


def test_relationship_score_levels():
    assert relationship_score("a", {"a"}, []) == 1.0
    assert relationship_score("a", set(), []) == 0.1
    assert relationship_score("a", set(), [interaction("a")] * 3) == pytest.approx(0.3)
    assert relationship_score("a", set(), [interaction("a")] * 12) == pytest.approx(0.7)


def test_relationship_ignores_other_authors_and_content_types():
    history = [interaction("b"), interaction("b"), interaction("a", content_type="community")]
    assert relationship_score("a", set(), history) == 0.1


def test_topic_match_defaults_without_tags():
    assert topic_match_score("anything at all", [], []) == 0.3


def test_topic_match_counts_tags_and_faith_keywords():
    # one tag hit (0.2) + one faith keyword 'worship' (0.1)
    assert topic_match_score("Worship night was great", [], ["worship"]) == pytest.approx(0.3)
    # tag without keywords
    assert topic_match_score("Hiking this weekend", ["hiking"], []) == pytest.approx(0.2)
    # tags present but no hit
    assert topic_match_score("Hiking this weekend", ["cooking"], []) == 0.0


def test_topic_match_keyword_bonus_and_total_are_capped():
    text = "bible scripture prayer worship church faith"
    assert topic_match_score(text, ["zzz"], []) == pytest.approx(0.3)
    tags = ["bible", "scripture", "prayer", "worship", "church", "faith"]
    assert topic_match_score(text, tags, []) == 1.0


def test_trust_boost():
    assert trust_boost(microblog("m")) == 0.0
    assert trust_boost(microblog("m", verified=True)) == pytest.approx(0.3)
    # high engagement and likes/comments ratio > 2
    assert trust_boost(microblog("m", likes=12, comments=1)) == pytest.approx(0.2)
    assert trust_boost(microblog("m", likes=30, comments=2, verified=True)) == pytest.approx(0.5)


def test_cold_stranger_post_scores_0_095():
    scorer = FeedScorer()
    scored = scorer.score_microblog(microblog("m", hours_old=200), PROFILE, set(), [], NOW)

    assert scored.breakdown.engagement == 0.0
    assert scored.breakdown.relationship == 0.1
    assert scored.breakdown.topic_match == 0.3
    assert scored.breakdown.freshness == 0.05
    assert scored.breakdown.trust_boost == 0.0
    assert scored.score == pytest.approx(0.095)
    assert scored.reason == "Recommended for you"


def test_followed_author_reason():
    scored = FeedScorer().score_microblog(microblog("m", author_id="a"), PROFILE, {"a"}, [], NOW)
    assert scored.reason == "From someone you follow"


def test_final_score_applies_trust_multiplier():
    scored = FeedScorer().score_microblog(microblog("m", verified=True), PROFILE, set(), [], NOW)
    b = scored.breakdown
    composite = composite_score(b.engagement, b.relationship, b.topic_match, b.freshness)
    assert scored.score == pytest.approx(composite * 1.3)
    assert scored.reason == "From verified faith leader"


def test_repost_count_contributes_to_engagement():
    plain = FeedScorer().score_microblog(microblog("m"), PROFILE, set(), [], NOW)
    shared = FeedScorer().score_microblog(microblog("m", reposts=10), PROFILE, set(), [], NOW)
    assert shared.breakdown.engagement > plain.breakdown.engagement


def _scored(id, author, score):
    return ScoredItem(item=microblog(id, author_id=author), score=score, breakdown=None, reason="")


def test_diversify_keeps_two_per_author_in_order():
    ranked = [
        _scored("a1", "a", 0.9),
        _scored("a2", "a", 0.8),
        _scored("a3", "a", 0.7),
        _scored("b1", "b", 0.6),
        _scored("a4", "a", 0.5),
        _scored("b2", "b", 0.4),
        _scored("b3", "b", 0.3),
    ]
    kept = diversify(ranked, key=lambda s: s.item.author_id)
    assert [s.item_id for s in kept] == ["a1", "a2", "b1", "b2"]


def test_rank_microblogs_respects_limit_and_author_cap():
    candidates = [
        microblog(f"m{i}", author_id=f"author{i % 3}", likes=i, hours_old=i + 0.5)
        for i in range(30)
    ]
    ranked = FeedScorer().rank_microblogs(candidates, PROFILE, set(), [], limit=5, now=NOW)

    assert len(ranked) == 5
    authors = [s.item.author_id for s in ranked]
    assert all(authors.count(a) <= 2 for a in authors)
    scores = [s.score for s in ranked]
    assert scores == sorted(scores, reverse=True)


def test_rank_microblogs_cap_can_leave_feed_short():
    candidates = [microblog(f"m{i}", author_id="solo") for i in range(10)]
    ranked = FeedScorer().rank_microblogs(candidates, PROFILE, set(), [], limit=20, now=NOW)
    assert len(ranked) == 2


def community(id, members=0, tags=()):
    return CommunityItem(
        id=id, name=id, description=None, created_at=NOW, member_count=members, interest_tags=tags
    )


def test_community_score_weighted_sum():
    scored = FeedScorer().score_community(community("c", members=50), PROFILE)
    assert scored.breakdown.engagement == 0.5
    assert scored.breakdown.similarity == 0.3
    assert scored.score == pytest.approx(0.4 * 0.5 + 0.3 * 0.3 + 0.2 * 0.3 + 0.1 * 0.5)


def test_community_similarity_uses_tag_overlap():
    assert community_similarity_score(["prayer", "worship"], ["prayer", "music"]) == pytest.approx(0.5)
    assert community_similarity_score([], ["prayer"]) == 0.3
    assert community_similarity_score(["prayer"], []) == 0.3


@pytest.mark.parametrize("limit, expected", [(20, 6), (9, 3), (5, 1), (2, 0)])
def test_rank_communities_capped_at_third_of_limit(limit, expected):
    candidates = [community(f"c{i}", members=i * 10) for i in range(12)]
    ranked = FeedScorer().rank_communities(candidates, PROFILE, limit)
    assert len(ranked) == expected
    assert ranked == sorted(ranked, key=lambda s: s.score, reverse=True)


def test_scoring_config_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.max_items_per_author = 5
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.content.engagement = 1.0


def test_custom_config_changes_author_cap():
    config = dataclasses.replace(DEFAULT_CONFIG, max_items_per_author=3)
    candidates = [microblog(f"m{i}", author_id="solo") for i in range(10)]
    ranked = FeedScorer(config).rank_microblogs(candidates, PROFILE, set(), [], limit=20, now=NOW)
    assert len(ranked) == 3
