"""Turn raw profile and search payloads into account record attributes."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence

from ..data.records import COMMA_REPLACEMENT, MAX_CAPTIONS, AccountRecord, sanitize_text  # noqa: F401
from .errors import MalformedPayloadError


LOGGER = logging.getLogger(__name__)


def median(values: Sequence[float]) -> float:
    """Median of ``values``; an empty sequence yields 0."""

    if not values:
        return 0
    ordered = sorted(values)
    half = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[half]
    return (ordered[half - 1] + ordered[half]) / 2.0


def round_half_up(value: float, places: int = 0) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def engagement_percent(likes: float, followers: int) -> float:
    if not followers:
        return 0.0
    return round_half_up(likes / followers * 100, 2)


def _timeline_nodes(account: str, user: Dict[str, Any]) -> List[Optional[Dict[str, Any]]]:
    try:
        edges = user["edge_owner_to_timeline_media"]["edges"]
    except (KeyError, TypeError) as exc:
        raise MalformedPayloadError(account, "payload has no timeline media") from exc
    if not isinstance(edges, list):
        raise MalformedPayloadError(account, "timeline media edges are not a list")
    return [edge.get("node") if isinstance(edge, dict) else None for edge in edges]


def median_media_count(nodes: Sequence[Optional[Dict[str, Any]]], field: str) -> float:
    """Median of a per-post counter across the recent post window.

    The first post is skipped as it may be pinned and is not representative.
    ``video_view_count`` is a plain number; the other counters are edges
    with a ``count`` key.
    """

    counts: List[float] = []
    for node in nodes[1:]:
        if node is None:
            continue
        value = node.get(field)
        if isinstance(value, dict):
            value = value.get("count")
        if value is None:
            continue
        counts.append(value)
    return median(counts)


def video_fraction(nodes: Sequence[Optional[Dict[str, Any]]]) -> float:
    videos = sum(1 for node in nodes if node is not None and node.get("is_video"))
    if videos == 0:
        return 0
    return videos / len(nodes)


def _captions(nodes: Sequence[Optional[Dict[str, Any]]]) -> List[str]:
    captions: List[str] = []
    for node in nodes:
        if len(captions) >= MAX_CAPTIONS:
            break
        if node is None:
            continue
        edges = (node.get("edge_media_to_caption") or {}).get("edges") or []
        if not edges:
            continue
        text = (edges[0].get("node") or {}).get("text")
        if not text:
            continue
        captions.append(sanitize_text(text))
    return captions


def apply_profile(record: AccountRecord, payload: Dict[str, Any], *, include_text: bool) -> None:
    """Populate ``record`` from a profile payload.

    Raises :class:`MalformedPayloadError` when the payload lacks the user
    object or the follower count.
    """

    account = record.name
    try:
        user = payload["graphql"]["user"]
    except (KeyError, TypeError) as exc:
        raise MalformedPayloadError(account, "payload has no graphql.user") from exc

    try:
        followers = int(user["edge_followed_by"]["count"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedPayloadError(account, "payload has no follower count") from exc

    nodes = _timeline_nodes(account, user)
    likes = int(round_half_up(median_media_count(nodes, "edge_liked_by")))

    record.followers = followers
    record.likes = likes
    record.engagement = engagement_percent(likes, followers)
    record.comments = int(round_half_up(median_media_count(nodes, "edge_media_to_comment")))
    record.video_views = int(round_half_up(median_media_count(nodes, "video_view_count")))
    record.video_fraction = video_fraction(nodes)
    record.id = None if user.get("id") is None else str(user["id"])

    if include_text:
        record.biography = sanitize_text(user.get("biography"))
        record.external_url = sanitize_text(user.get("external_url"))
        record.full_name = sanitize_text(user.get("full_name"))
        record.profile_pic_url_hd = sanitize_text(user.get("profile_pic_url_hd"))
        record.profile_pic_url = sanitize_text(user.get("profile_pic_url"))
        record.captions = _captions(nodes)


def apply_search_result(record: AccountRecord, payload: Dict[str, Any]) -> bool:
    """Populate ``record`` from a name search; return False when nothing matched.

    The first verified user wins, otherwise the first result is used.
    """

    users = [entry.get("user") for entry in payload.get("users") or [] if isinstance(entry, dict)]
    users = [user for user in users if isinstance(user, dict)]
    if not users:
        LOGGER.info("No search results for %s", record.name)
        return False

    chosen = next((user for user in users if user.get("is_verified")), users[0])
    try:
        record.followers = int(chosen["follower_count"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedPayloadError(record.name, "search result has no follower count") from exc

    record.username = sanitize_text(chosen.get("username"))
    record.full_name = sanitize_text(chosen.get("full_name"))
    record.profile_pic_url = sanitize_text(chosen.get("profile_pic_url"))
    record.is_verified = bool(chosen.get("is_verified"))
    record.is_private = bool(chosen.get("is_private"))
    record.id = None if chosen.get("pk") is None else str(chosen["pk"])
    LOGGER.debug("Resolved %s -> @%s", record.name, record.username)
    return True
