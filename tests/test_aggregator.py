"""Unit tests for payload aggregation (medians, engagement, captions, name search)."""
from __future__ import annotations

import pytest

from follower_enricher.data.records import MAX_CAPTIONS, AccountRecord
from follower_enricher.fetch.aggregator import (
    COMMA_REPLACEMENT,
    apply_profile,
    apply_search_result,
    engagement_percent,
    median,
    median_media_count,
    sanitize_text,
    video_fraction,
)
from follower_enricher.fetch.errors import MalformedPayloadError, PermanentFetchError
from tests.helpers.payloads import make_post, make_profile_payload, make_search_payload


# ==============================================================================
# median() / engagement_percent()
# ==============================================================================

@pytest.mark.unit
@pytest.mark.parametrize(
    "values,expected",
    [
        ([5, 1, 3], 3),
        ([4, 2], 3.0),
        ([], 0),
        ([7], 7),
    ],
)
def test_median(values, expected):
    assert median(values) == expected


@pytest.mark.unit
def test_median_does_not_mutate_input():
    values = [3, 1, 2]
    median(values)
    assert values == [3, 1, 2]


@pytest.mark.unit
def test_engagement_zero_followers_is_zero():
    assert engagement_percent(1000, 0) == 0.0


@pytest.mark.unit
def test_engagement_percent_two_decimals():
    assert engagement_percent(10, 200) == 5.0
    assert engagement_percent(1, 3) == 33.33


# ==============================================================================
# Post window statistics
# ==============================================================================

@pytest.mark.unit
def test_median_skips_first_post_and_null_nodes():
    nodes = [
        make_post(likes=1_000_000)["node"],  # pinned viral post
        None,
        make_post(likes=10)["node"],
        make_post(likes=30)["node"],
        make_post(likes=20)["node"],
    ]
    assert median_media_count(nodes, "edge_liked_by") == 20


@pytest.mark.unit
def test_median_video_views_reads_plain_number():
    nodes = [
        make_post(views=999)["node"],
        make_post(views=100)["node"],
        make_post()["node"],  # no video_view_count
        make_post(views=300)["node"],
    ]
    assert median_media_count(nodes, "video_view_count") == 200.0


@pytest.mark.unit
def test_video_fraction():
    nodes = [make_post(is_video=True)["node"], make_post()["node"], None, make_post(is_video=True)["node"]]
    assert video_fraction(nodes) == 0.5
    assert video_fraction([]) == 0


# ==============================================================================
# sanitize_text()
# ==============================================================================

@pytest.mark.unit
def test_sanitize_replaces_commas_and_linebreaks():
    assert sanitize_text("a,b\r\nc\nd\re") == f"a{COMMA_REPLACEMENT}b c d e"


@pytest.mark.unit
def test_sanitize_none_is_empty():
    assert sanitize_text(None) == ""


# ==============================================================================
# apply_profile()
# ==============================================================================

@pytest.mark.unit
def test_apply_profile_populates_numeric_fields():
    posts = [
        make_post(likes=500, comments=50, is_video=True),
        make_post(likes=10, comments=1),
        make_post(likes=10, comments=3, is_video=True, views=40),
    ]
    record = AccountRecord(name="alice", count=3)

    apply_profile(record, make_profile_payload(followers="200", posts=posts), include_text=False)

    assert record.followers == 200
    assert record.likes == 10
    assert record.engagement == 5.0
    assert record.comments == 2
    assert record.video_views == 40
    assert record.video_fraction == pytest.approx(2 / 3)
    assert record.id == "4242"
    assert record.biography is None
    assert record.captions == []


@pytest.mark.unit
def test_apply_profile_rounds_even_video_view_median():
    posts = [make_post(views=999), make_post(views=100), make_post(views=301)]
    record = AccountRecord(name="alice")

    apply_profile(record, make_profile_payload(posts=posts), include_text=False)

    assert record.video_views == 201
    assert isinstance(record.video_views, int)


@pytest.mark.unit
def test_apply_profile_rounds_half_likes_up():
    posts = [make_post(), make_post(likes=2), make_post(likes=3)]
    record = AccountRecord(name="bob")

    apply_profile(record, make_profile_payload(followers=100, posts=posts), include_text=False)

    assert record.likes == 3
    assert record.engagement == 3.0


@pytest.mark.unit
def test_apply_profile_without_posts_yields_zeroes():
    record = AccountRecord(name="quiet")
    apply_profile(record, make_profile_payload(followers=0, posts=[]), include_text=False)

    assert record.followers == 0
    assert record.likes == 0
    assert record.engagement == 0.0
    assert record.video_fraction == 0


@pytest.mark.unit
def test_apply_profile_collects_sanitized_text_and_captions():
    posts = [make_post(caption="first, pinned")]
    posts += [make_post(caption="")]
    posts += [make_post()]
    posts += [make_post(caption=f"line {i}\nmore") for i in range(MAX_CAPTIONS + 3)]
    record = AccountRecord(name="writer")

    apply_profile(
        record,
        make_profile_payload(posts=posts, biography="Hi,\nthere", external_url=None),
        include_text=True,
    )

    assert record.biography == f"Hi{COMMA_REPLACEMENT} there"
    assert record.external_url == ""
    assert record.full_name == "Example Person"
    assert len(record.captions) == MAX_CAPTIONS
    assert record.captions[0] == f"first{COMMA_REPLACEMENT} pinned"
    assert record.captions[1] == "line 0 more"


@pytest.mark.unit
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"graphql": {}},
        make_profile_payload(followers=None),
        {"graphql": {"user": {"edge_followed_by": {"count": 5}}}},
    ],
)
def test_apply_profile_malformed_payload_is_permanent(payload):
    record = AccountRecord(name="broken")
    with pytest.raises(MalformedPayloadError) as excinfo:
        apply_profile(record, payload, include_text=False)
    assert isinstance(excinfo.value, PermanentFetchError)
    assert excinfo.value.code == "malformed_payload"


# ==============================================================================
# apply_search_result()
# ==============================================================================

@pytest.mark.unit
def test_search_prefers_first_verified_user():
    payload = make_search_payload(
        {"username": "fan_page", "follower_count": 10, "is_verified": False, "pk": 1},
        {"username": "the_real_one", "follower_count": 90000, "is_verified": True,
         "full_name": "Real, One", "profile_pic_url": "pic", "is_private": False, "pk": 2},
        {"username": "other_verified", "follower_count": 5, "is_verified": True, "pk": 3},
    )
    record = AccountRecord(name="Real One")

    assert apply_search_result(record, payload) is True
    assert record.username == "the_real_one"
    assert record.followers == 90000
    assert record.full_name == f"Real{COMMA_REPLACEMENT} One"
    assert record.is_verified is True
    assert record.is_private is False
    assert record.id == "2"


@pytest.mark.unit
def test_search_falls_back_to_first_result():
    payload = make_search_payload(
        {"username": "first", "follower_count": 1, "pk": 11},
        {"username": "second", "follower_count": 2, "pk": 12},
    )
    record = AccountRecord(name="Some Name")

    assert apply_search_result(record, payload) is True
    assert record.username == "first"


@pytest.mark.unit
@pytest.mark.parametrize("payload", [{}, {"users": []}, {"users": None}])
def test_search_without_results_reports_no_match(payload):
    record = AccountRecord(name="Nobody Here")
    assert apply_search_result(record, payload) is False
    assert record.followers is None


@pytest.mark.unit
def test_search_sanitizes_username():
    payload = make_search_payload({"username": "odd,name\n", "follower_count": 3, "pk": 7})
    record = AccountRecord(name="Odd Name")

    assert apply_search_result(record, payload) is True
    assert record.username == f"odd{COMMA_REPLACEMENT}name "
