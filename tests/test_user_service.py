"""Tests for the user service."""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage

from bucketly.errors import DuplicateResourceError, NotFoundError, ValidationError
from bucketly.lists.services import ListService
from bucketly.user.services import UserService
from tests.conftest import add_profile


@pytest.fixture
def users(app, db):
    add_profile(db, "u1", username="alice")
    add_profile(db, "u2", username="bob")
    add_profile(db, "u3", username="carol")


def _counts(db, user_id):
    return UserService.get_user_follower_counts(db, user_id)


def test_new_profile_starts_at_zero():
    profile = UserService.new_profile("alice", "alice@example.com")
    assert profile["total_points"] == 0
    assert profile["global_rank"] is None
    assert profile["is_private"] is False


def test_fetch_profile(users, db):
    assert UserService.fetch_user_profile(db, "u1")["username"] == "alice"
    assert UserService.fetch_profile_by_username(db, "bob")["id"] == "u2"
    with pytest.raises(NotFoundError):
        UserService.fetch_user_profile(db, "ghost")
    with pytest.raises(NotFoundError):
        UserService.fetch_profile_by_username(db, "nobody")


def test_username_availability(users, db):
    assert UserService.check_username_availability(db, "dave")
    assert not UserService.check_username_availability(db, "alice")
    assert UserService.check_username_availability(db, "alice", exclude_user_id="u1")


def test_update_profile(users, db):
    updated = UserService.update_user_profile(
        db,
        "u1",
        {
            "username": " alice_2 ",
            "bio": "Collector of sunsets",
            "website_url": "https://alice.example",
            "is_private": 1,
            "total_points": 9999,
        },
    )
    assert updated["username"] == "alice_2"
    assert updated["is_private"] is True
    assert updated["total_points"] == 0


def test_update_profile_rejects_taken_username(users, db):
    with pytest.raises(DuplicateResourceError, match="Username is already taken"):
        UserService.update_user_profile(db, "u1", {"username": "bob"})


def test_update_profile_rejects_bad_input(users, db):
    with pytest.raises(ValidationError):
        UserService.update_user_profile(db, "u1", {"username": "a b"})
    with pytest.raises(ValidationError):
        UserService.update_user_profile(db, "u1", {"bio": "x" * 501})
    with pytest.raises(ValidationError):
        UserService.update_user_profile(
            db, "u1", {"github_url": "javascript:alert(1)"}
        )
    with pytest.raises(NotFoundError):
        UserService.update_user_profile(db, "ghost", {"bio": "hi"})


def test_follow_and_unfollow(users, db):
    assert UserService.follow_user(db, "u1", "u2") is True
    assert UserService.follow_user(db, "u1", "u2") is False
    UserService.follow_user(db, "u3", "u2")

    assert UserService.is_following_user(db, "u1", "u2")
    assert _counts(db, "u2") == {"followers_count": 2, "following_count": 0}
    assert _counts(db, "u1") == {"followers_count": 0, "following_count": 1}

    followers = UserService.get_user_followers(db, "u2")
    assert {row["follower"]["username"] for row in followers} == {"alice", "carol"}
    following = UserService.get_user_following(db, "u1")
    assert [row["following"]["username"] for row in following] == ["bob"]

    UserService.unfollow_user(db, "u1", "u2")
    assert not UserService.is_following_user(db, "u1", "u2")
    assert _counts(db, "u2")["followers_count"] == 1


def test_follow_rules(users, db):
    with pytest.raises(ValidationError):
        UserService.follow_user(db, "u1", "u1")
    with pytest.raises(NotFoundError):
        UserService.follow_user(db, "u1", "ghost")


def test_profile_stats_ignore_shadow_lists(users, db):
    source = ListService.create_list(
        db,
        "u2",
        "Reading list",
        "books",
        is_public=True,
        items=[{"title": "Read Dune", "points": 25}],
        is_admin=True,
    )
    ListService.create_list(db, "u1", "My own list", "songs")
    ListService.follow_list(db, "u1", source["id"])

    stats = UserService.calculate_profile_stats(db, "u1")
    assert stats == {
        "lists_created": 1,
        "lists_following": 1,
        "items_completed": 0,
        "total_points": 0,
    }


def test_export_user_data(users, db):
    bucket_list = ListService.create_list(
        db, "u1", "Export me", "places", items=[{"title": "Visit Oslo"}]
    )
    UserService.follow_user(db, "u1", "u2")

    export = UserService.export_user_data(db, "u1")

    assert export["user"]["username"] == "alice"
    assert export["user"]["statistics"]["lists_created"] == 1
    assert export["data"]["bucket_lists"][0]["id"] == bucket_list["id"]
    assert isinstance(export["data"]["bucket_lists"][0]["created_at"], str)
    assert export["data"]["bucket_items"][0]["bucket_list_name"] == "Export me"
    assert export["data"]["following"][0]["following_id"] == "u2"
    assert export["data"]["notifications"] == []
    assert export["export_metadata"]["version"] == "1.0"
    assert export["export_metadata"]["format"] == "json"


def test_upload_avatar_replaces_previous(users, db):
    old_url = "https://storage.googleapis.com/test-bucket/avatars/u1/old.jpg"
    db.collection("profiles").document("u1").update({"avatar_url": old_url})

    bucket = MagicMock()
    bucket.name = "test-bucket"
    bucket.blob.return_value.public_url = "https://cdn.example/new.jpg"
    buffer = io.BytesIO()
    Image.new("RGB", (1024, 1024), "blue").save(buffer, format="PNG")
    buffer.seek(0)
    upload = FileStorage(stream=buffer, filename="me.png", content_type="image/png")

    with patch("bucketly.storage.storage.bucket", return_value=bucket):
        url = UserService.upload_profile_avatar(db, "u1", upload)

    assert url == "https://cdn.example/new.jpg"
    paths = [call.args[0] for call in bucket.blob.call_args_list]
    assert paths[0] == "avatars/u1/old.jpg"
    assert paths[-1].startswith("avatars/u1/avatar-")
    bucket.blob.return_value.delete.assert_called_once()
    assert UserService.fetch_user_profile(db, "u1")["avatar_url"] == url


def test_upload_avatar_rejects_gif(users, db):
    upload = FileStorage(
        stream=io.BytesIO(b"GIF89a"), filename="me.gif", content_type="image/gif"
    )
    with pytest.raises(ValidationError):
        UserService.upload_profile_avatar(db, "u1", upload)
