"""Tests for bucket list services."""

from __future__ import annotations

import datetime
from unittest.mock import patch

import pytest
from google.api_core.exceptions import ServiceUnavailable

from bucketly.errors import ForbiddenError, NotFoundError, ValidationError
from bucketly.lists.services import ListService
from tests.conftest import MockBatch, add_profile

ITEMS = [
    {"title": "See the Colosseum", "points": 50, "difficulty": "easy"},
    {"title": "Walk the Appian Way", "points": 30},
]


def _stream(db, collection, **filters):
    rows = []
    for doc in db.collection(collection).stream():
        data = doc.to_dict()
        if all(data.get(k) == v for k, v in filters.items()):
            rows.append({**data, "id": doc.id})
    return rows


@pytest.fixture
def public_list(app, db):
    add_profile(db, "author")
    add_profile(db, "fan")
    return ListService.create_list(
        db,
        "author",
        "Roman Holiday",
        "places",
        description="Everything to do in Rome",
        is_public=True,
        items=ITEMS,
        is_admin=True,
    )


def test_create_list_stores_items_and_counters(public_list, db):
    assert public_list["is_public"] is True
    assert public_list["origin_id"] is None

    items = _stream(db, "bucket_items", bucket_list_id=public_list["id"])
    assert sorted(item["title"] for item in items) == [
        "See the Colosseum",
        "Walk the Appian Way",
    ]
    assert all(item["completed"] is False for item in items)

    profile = db.collection("profiles").document("author").get().to_dict()
    assert profile["lists_created"] == 1

    events = _stream(db, "timeline_events", user_id="author")
    assert [event["title"] for event in events] == ["Created: Roman Holiday"]
    assert events[0]["is_public"] is True


def test_only_admins_publish_lists(app, db):
    add_profile(db, "u1")
    created = ListService.create_list(
        db, "u1", "My Things", "books", is_public=True, is_admin=False
    )
    assert created["is_public"] is False

    updated = ListService.update_list(db, "u1", created["id"], {"is_public": True})
    assert updated["is_public"] is False


def test_create_list_validates_input(app, db):
    with pytest.raises(ValidationError):
        ListService.create_list(db, "u1", "ab", "places")
    with pytest.raises(ValidationError):
        ListService.create_list(db, "u1", "Valid name", "sports")
    with pytest.raises(ValidationError):
        ListService.create_list(
            db, "u1", "Valid name", "places", items=[{"title": "Go", "points": 5000}]
        )
    assert _stream(db, "bucket_lists") == []


def test_private_list_hidden_from_others(app, db):
    add_profile(db, "u1")
    created = ListService.create_list(db, "u1", "Secret plans", "adventures")
    assert ListService.fetch_list(db, created["id"], "u1")["name"] == "Secret plans"
    with pytest.raises(NotFoundError):
        ListService.fetch_list(db, created["id"], "someone-else")


def test_fetch_list_includes_items_and_owner(public_list, db):
    fetched = ListService.fetch_list(db, public_list["id"], "fan")
    assert len(fetched["items"]) == 2
    assert fetched["owner"]["username"] == "author"
    assert fetched["is_following"] is False


def test_update_list_requires_owner(public_list, db):
    with pytest.raises(ForbiddenError):
        ListService.update_list(db, "fan", public_list["id"], {"name": "Mine now"})
    denied = _stream(db, "audit_logs", action="update_bucket_list")
    assert denied[0]["status"] == "denied"


def test_follow_creates_shadow_copy(public_list, db):
    result = ListService.follow_list(db, "fan", public_list["id"])
    assert result["already_following"] is False

    shadow = db.collection("bucket_lists").document(result["shadow_list_id"]).get()
    shadow_data = shadow.to_dict()
    assert shadow_data["origin_id"] == public_list["id"]
    assert shadow_data["user_id"] == "fan"
    assert shadow_data["is_public"] is False

    copied = _stream(db, "bucket_items", bucket_list_id=result["shadow_list_id"])
    assert len(copied) == 2
    assert all(item["user_id"] == "fan" for item in copied)
    assert all(item["current_value"] == 0 for item in copied)

    source = db.collection("bucket_lists").document(public_list["id"]).get()
    assert source.to_dict()["follower_count"] == 1
    assert ListService.is_following_list(db, "fan", public_list["id"])

    profile = db.collection("profiles").document("fan").get().to_dict()
    assert profile["lists_following"] == 1
    assert profile["lists_created"] == 0


def test_follow_twice_is_benign(public_list, db):
    ListService.follow_list(db, "fan", public_list["id"])
    again = ListService.follow_list(db, "fan", public_list["id"])

    assert again == {"already_following": True}
    assert len(_stream(db, "list_followers", bucket_list_id=public_list["id"])) == 1
    assert len(_stream(db, "bucket_lists", origin_id=public_list["id"])) == 1


def test_failed_copy_leaves_no_follow_behind(public_list, db):
    with patch(
        "bucketly.lists.services.following.clone_list",
        side_effect=ServiceUnavailable("down"),
    ):
        with pytest.raises(ServiceUnavailable):
            ListService.follow_list(db, "fan", public_list["id"])

    assert not ListService.is_following_list(db, "fan", public_list["id"])

    retry = ListService.follow_list(db, "fan", public_list["id"])
    assert retry["already_following"] is False
    assert len(_stream(db, "bucket_lists", origin_id=public_list["id"])) == 1


def test_follow_rules(public_list, app, db):
    with pytest.raises(ValidationError):
        ListService.follow_list(db, "author", public_list["id"])

    private = ListService.create_list(db, "author", "Just for me", "books")
    with pytest.raises(NotFoundError):
        ListService.follow_list(db, "fan", private["id"])


def test_shadow_lists_are_read_only(public_list, db):
    shadow_id = ListService.follow_list(db, "fan", public_list["id"])[
        "shadow_list_id"
    ]
    assert ListService.is_shadow_list(db, shadow_id)

    with pytest.raises(ForbiddenError, match="Cannot modify a followed list"):
        ListService.update_list(db, "fan", shadow_id, {"name": "Renamed"})
    with pytest.raises(ForbiddenError):
        ListService.delete_list(db, "fan", shadow_id)

    denied = _stream(db, "audit_logs", user_id="fan", status="denied")
    assert {entry["action"] for entry in denied} == {
        "update_bucket_list",
        "delete_bucket_list",
    }


def test_unfollow_hides_but_keeps_shadow_list(public_list, db):
    shadow_id = ListService.follow_list(db, "fan", public_list["id"])[
        "shadow_list_id"
    ]
    assert [row["id"] for row in ListService.fetch_user_lists(db, "fan")] == [
        shadow_id
    ]

    assert ListService.unfollow_list(db, "fan", public_list["id"]) is True
    assert ListService.unfollow_list(db, "fan", public_list["id"]) is False

    assert ListService.fetch_user_lists(db, "fan") == []
    assert db.collection("bucket_lists").document(shadow_id).get().exists
    source = db.collection("bucket_lists").document(public_list["id"]).get()
    assert source.to_dict()["follower_count"] == 0


def test_refollow_reuses_shadow_list(public_list, db):
    first = ListService.follow_list(db, "fan", public_list["id"])
    ListService.unfollow_list(db, "fan", public_list["id"])
    second = ListService.follow_list(db, "fan", public_list["id"])
    assert second["shadow_list_id"] == first["shadow_list_id"]


def test_only_owned_hides_shadow_lists(public_list, db):
    ListService.follow_list(db, "fan", public_list["id"])
    own = ListService.create_list(db, "fan", "Fan favourites", "songs")
    owned = ListService.fetch_user_lists(db, "fan", only_owned=True)
    assert [row["id"] for row in owned] == [own["id"]]


def test_delete_list_removes_items_and_followers(public_list, db):
    ListService.follow_list(db, "fan", public_list["id"])
    ListService.delete_list(db, "author", public_list["id"])

    assert not db.collection("bucket_lists").document(public_list["id"]).get().exists
    assert _stream(db, "bucket_items", bucket_list_id=public_list["id"]) == []
    assert _stream(db, "list_followers", bucket_list_id=public_list["id"]) == []
    profile = db.collection("profiles").document("author").get().to_dict()
    assert profile["lists_created"] == 0


def test_clone_list(public_list, db):
    clone = ListService.clone_list(db, "fan", public_list["id"])
    assert clone["origin_id"] == public_list["id"]
    assert clone["name"] == "Roman Holiday"
    assert len(_stream(db, "bucket_items", bucket_list_id=clone["id"])) == 2


def test_public_discovery(public_list, db):
    ListService.create_list(db, "author", "Hidden gems", "places")

    page = ListService.fetch_public_lists(db)
    assert [row["id"] for row in page["data"]] == [public_list["id"]]
    assert page["count"] == 1
    assert page["has_more"] is False

    assert ListService.fetch_public_lists(db, category="books")["data"] == []
    assert [row["id"] for row in ListService.search_lists(db, "ROME")] == [
        public_list["id"]
    ]
    assert ListService.search_lists(db, "   ") == []


def test_trending_orders_by_followers(app, db):
    add_profile(db, "admin")
    quiet = ListService.create_list(
        db, "admin", "Quiet list", "books", is_public=True, is_admin=True
    )
    popular = ListService.create_list(
        db, "admin", "Popular list", "books", is_public=True, is_admin=True
    )
    stale = ListService.create_list(
        db, "admin", "Old list", "books", is_public=True, is_admin=True
    )
    lists = db.collection("bucket_lists")
    lists.document(popular["id"]).update({"follower_count": 5})
    lists.document(stale["id"]).update(
        {
            "follower_count": 50,
            "created_at": datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc),
        }
    )

    trending = ListService.fetch_trending_lists(db)
    assert [row["id"] for row in trending] == [popular["id"], quiet["id"]]


def test_global_items_catalog(db):
    catalog = db.collection("global_items")
    catalog.document("g1").set(
        {"title": "Skydive", "category": "adventures", "points": 100}
    )
    catalog.document("g2").set(
        {"title": "Read Dune", "category": "books", "points": 20}
    )
    catalog.document("g3").set(
        {"title": "Bungee jump", "category": "adventures", "points": 80}
    )

    result = ListService.fetch_global_items(db, category="adventures")
    assert [row["id"] for row in result["data"]] == ["g1", "g3"]
    assert ListService.fetch_global_items(db, query="dune")["data"][0]["id"] == "g2"


def test_many_items_are_written_in_capped_batches(app, db):
    add_profile(db, "u1")
    sizes = []
    real_batch = db.batch

    def tracking_batch():
        batch = real_batch()

        def commit():
            sizes.append(len(batch.writes))
            batch._real_commit()

        batch.commit = commit
        return batch

    items = [{"title": f"Goal number {n}"} for n in range(5)]
    with patch("bucketly.constants.FIRESTORE_BATCH_LIMIT", 2), patch.object(
        db, "batch", side_effect=tracking_batch
    ):
        created = ListService.create_list(db, "u1", "Many goals", "books", items=items)
        clone = ListService.clone_list(db, "u1", created["id"])

    assert sizes == [2, 2, 1, 2, 2, 1]
    assert len(_stream(db, "bucket_items", bucket_list_id=created["id"])) == 5
    assert len(_stream(db, "bucket_items", bucket_list_id=clone["id"])) == 5


def test_failed_item_write_removes_the_new_list(app, db):
    add_profile(db, "u1")
    with patch.object(
        MockBatch, "_real_commit", side_effect=ServiceUnavailable("down")
    ):
        with pytest.raises(ServiceUnavailable):
            ListService.create_list(
                db, "u1", "Doomed list", "books", items=[{"title": "Never saved"}]
            )
    assert _stream(db, "bucket_lists") == []
