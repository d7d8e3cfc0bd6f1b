"""Tests for timelines, the social feed and global ranks."""

from __future__ import annotations

import datetime
from unittest.mock import patch

import pytest

from bucketly.errors import NotFoundError, ValidationError
from bucketly.lists.services import ListService
from bucketly.social.services import SocialService
from tests.conftest import add_profile


def test_competition_ranks(app, db):
    add_profile(db, "ana", total_points=300)
    add_profile(db, "bo", total_points=100)
    add_profile(db, "cy", total_points=300)
    add_profile(db, "di", total_points=50)

    leaderboard = SocialService.fetch_leaderboard(db)
    ranks = [(row["username"], row["rank"]) for row in leaderboard["data"]]
    assert ranks == [("ana", 1), ("cy", 1), ("bo", 3), ("di", 4)]


def test_recalculate_writes_only_changed_ranks(app, db):
    add_profile(db, "ana", total_points=300, global_rank=1)
    add_profile(db, "bo", total_points=100, global_rank=1)

    assert SocialService.recalculate_global_ranks(db) == 1
    assert SocialService.fetch_user_rank(db, "bo") == 2
    assert SocialService.recalculate_global_ranks(db) == 0


def test_recalculate_failure_is_reported_as_zero(app, db):
    with patch.object(
        SocialService, "_ranked_profiles", side_effect=RuntimeError("offline")
    ):
        assert SocialService.recalculate_global_ranks(db) == 0


def test_fetch_user_rank_for_missing_profile(app, db):
    with pytest.raises(NotFoundError):
        SocialService.fetch_user_rank(db, "ghost")


def test_unknown_event_type(db):
    with pytest.raises(ValidationError):
        SocialService.create_timeline_event(db, "u1", "party", "Party time")


def test_timeline_paging_and_privacy(db):
    for index in range(3):
        SocialService.create_timeline_event(
            db, "u1", "list_created", f"Created: List {index}"
        )
    SocialService.create_timeline_event(
        db, "u1", "item_completed", "Completed: secret", is_public=False
    )

    everything = SocialService.fetch_user_timeline(db, "u1", page_size=2)
    assert everything["count"] == 4
    assert everything["has_more"] is True
    assert len(everything["data"]) == 2

    public = SocialService.fetch_user_timeline(db, "u1", public_only=True)
    assert public["count"] == 3
    assert all(event["is_public"] for event in public["data"])


def test_timeline_is_newest_first(db):
    events = db.collection("timeline_events")
    for title, day in (("old", 1), ("new", 3), ("mid", 2)):
        events.add(
            {
                "user_id": "u1",
                "title": title,
                "is_public": True,
                "created_at": datetime.datetime(2024, 1, day),
            }
        )
    timeline = SocialService.fetch_user_timeline(db, "u1")
    assert [event["title"] for event in timeline["data"]] == ["new", "mid", "old"]


def test_find_timeline_events_by_metadata(db):
    SocialService.create_timeline_event(
        db, "u1", "item_completed", "Done", metadata={"item_id": "i1"}
    )
    SocialService.create_timeline_event(
        db, "u1", "item_completed", "Done too", metadata={"item_id": "i2"}
    )
    found = SocialService.find_timeline_events(
        db, "u1", "item_completed", item_id="i2"
    )
    assert [doc.to_dict()["title"] for doc in found] == ["Done too"]


def test_feed_shows_public_events_of_followed_owners(app, db):
    add_profile(db, "author", avatar_url="https://example.com/a.png")
    add_profile(db, "fan")
    source = ListService.create_list(
        db, "author", "Road trips", "places", is_public=True, is_admin=True
    )
    ListService.follow_list(db, "fan", source["id"])
    SocialService.create_timeline_event(
        db, "author", "item_completed", "Private win", is_public=False
    )

    assert SocialService.fetch_followed_user_ids(db, "fan") == ["author"]
    followed = SocialService.fetch_followed_users(db, "fan")
    assert followed[0]["username"] == "author"

    feed = SocialService.fetch_social_feed(db, "fan")
    assert [event["title"] for event in feed["events"]] == ["Created: Road trips"]
    assert feed["events"][0]["avatar_url"] == "https://example.com/a.png"
    assert feed["has_more"] is False


def test_feed_without_follows_is_empty(app, db):
    add_profile(db, "loner")
    assert SocialService.fetch_social_feed(db, "loner") == {
        "events": [],
        "has_more": False,
    }
