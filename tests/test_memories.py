"""Tests for the memory service."""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage

from bucketly.errors import ForbiddenError, NotFoundError, ValidationError
from bucketly.lists.services import ListService
from bucketly.memories.services import MemoryService
from tests.conftest import add_profile

REFLECTION = "The view from the top was worth every step."
PHOTO = "https://storage.googleapis.com/test-bucket/memory-photos/u1/a.jpg"


@pytest.fixture
def item(app, db):
    add_profile(db, "u1")
    add_profile(db, "u2")
    bucket_list = ListService.create_list(
        db,
        "u1",
        "Mountains",
        "adventures",
        is_public=True,
        items=[{"title": "Climb Ben Nevis", "points": 60}],
        is_admin=True,
    )
    for doc in db.collection("bucket_items").stream():
        if doc.to_dict()["bucket_list_id"] == bucket_list["id"]:
            return {**doc.to_dict(), "id": doc.id}
    raise AssertionError("item was not created")


@pytest.fixture
def bucket():
    bucket = MagicMock()
    bucket.name = "test-bucket"
    bucket.blob.return_value.public_url = PHOTO
    with patch("bucketly.storage.storage.bucket", return_value=bucket):
        yield bucket


def _memory_events(db):
    return [
        doc.to_dict()
        for doc in db.collection("timeline_events").stream()
        if doc.to_dict()["event_type"] == "memory_shared"
    ]


def test_private_memory_has_no_event(db, item):
    memory = MemoryService.create_memory(db, "u1", item["id"], REFLECTION)
    assert memory["id"] == f"u1_{item['id']}"
    assert memory["is_public"] is False
    assert _memory_events(db) == []


def test_public_memory_is_announced_and_upserted(db, item):
    MemoryService.create_memory(
        db,
        "u1",
        item["id"],
        REFLECTION,
        photos=[PHOTO, "https://evil.example/x.jpg"],
        is_public=True,
    )
    memory = MemoryService.create_memory(
        db, "u1", item["id"], REFLECTION + " Again!", is_public=True
    )

    stored = db.collection("memories").document(memory["id"]).get().to_dict()
    assert stored["reflection"].endswith("Again!")
    assert stored["bucket_item_id"] == item["id"]

    titles = sorted(event["title"] for event in _memory_events(db))
    assert titles == [
        "Shared a memory: Climb Ben Nevis",
        "Updated memory: Climb Ben Nevis",
    ]
    first = next(e for e in _memory_events(db) if not e["metadata"]["is_update"])
    assert len(first["metadata"]["photos"]) == 1
    assert first["metadata"]["list_name"] == "Mountains"


def test_create_memory_validation(db, item):
    with pytest.raises(ValidationError):
        MemoryService.create_memory(db, "u1", item["id"], "short")
    with pytest.raises(NotFoundError):
        MemoryService.create_memory(db, "u1", "missing-item", REFLECTION)


def test_update_memory_requires_owner(db, item):
    memory = MemoryService.create_memory(db, "u1", item["id"], REFLECTION)
    with pytest.raises(ForbiddenError):
        MemoryService.update_memory(db, "u2", memory["id"], {"is_public": True})

    updated = MemoryService.update_memory(
        db, "u1", memory["id"], {"is_public": 1, "user_id": "u2"}
    )
    assert updated["is_public"] is True
    assert updated["user_id"] == "u1"


def test_delete_memory_removes_its_events(db, item):
    memory = MemoryService.create_memory(
        db, "u1", item["id"], REFLECTION, is_public=True
    )
    MemoryService.delete_memory(db, "u1", memory["id"])

    assert not db.collection("memories").document(memory["id"]).get().exists
    assert _memory_events(db) == []


def test_item_memories_visibility(db, item):
    MemoryService.create_memory(db, "u1", item["id"], REFLECTION)
    MemoryService.create_memory(db, "u2", item["id"], REFLECTION, is_public=True)

    as_u1 = MemoryService.fetch_memories_for_item(db, item["id"], "u1")
    assert sorted(row["user_id"] for row in as_u1) == ["u1", "u2"]

    anonymous = MemoryService.fetch_memories_for_item(db, item["id"])
    assert [row["user_id"] for row in anonymous] == ["u2"]
    assert anonymous[0]["profile"]["username"] == "u2"

    mine = MemoryService.fetch_user_memory_for_item(db, "u1", item["id"])
    assert mine["reflection"] == REFLECTION
    assert MemoryService.fetch_user_memory_for_item(db, "u3", item["id"]) is None


def test_private_list_items_are_hidden_from_other_users(db, item):
    secret = ListService.create_list(
        db, "u1", "Secret goals", "books", items=[{"title": "Private goal"}]
    )
    private_item = next(
        doc.id
        for doc in db.collection("bucket_items").stream()
        if doc.to_dict()["bucket_list_id"] == secret["id"]
    )

    with pytest.raises(NotFoundError):
        MemoryService.create_memory(
            db, "u2", private_item, REFLECTION, is_public=True
        )
    with pytest.raises(NotFoundError):
        MemoryService.fetch_memories_for_item(db, private_item, "u2")
    assert _memory_events(db) == []

    MemoryService.create_memory(db, "u1", private_item, REFLECTION)
    assert len(MemoryService.fetch_memories_for_item(db, private_item, "u1")) == 1


def test_user_memories_include_item_and_list(db, item):
    MemoryService.create_memory(db, "u1", item["id"], REFLECTION)

    own = MemoryService.fetch_memories_for_user(db, "u1", "u1")
    assert own[0]["bucket_item"]["title"] == "Climb Ben Nevis"
    assert own[0]["bucket_item"]["bucket_list"]["name"] == "Mountains"

    assert MemoryService.fetch_memories_for_user(db, "u1", "u2") == []


def test_upload_memory_photo(app, bucket):
    buffer = io.BytesIO()
    Image.new("RGB", (3000, 1500), "red").save(buffer, format="PNG")
    buffer.seek(0)
    upload = FileStorage(
        stream=buffer, filename="summit.png", content_type="image/png"
    )

    url = MemoryService.upload_memory_photo("u1", upload)

    assert url == PHOTO
    path = bucket.blob.call_args[0][0]
    assert path.startswith("memory-photos/u1/")
    assert path.endswith("-summit.jpg")
    data = bucket.blob.return_value.upload_from_string.call_args[0][0]
    assert max(Image.open(io.BytesIO(data)).size) == 1920


def test_upload_rejects_non_images(app, bucket):
    upload = FileStorage(
        stream=io.BytesIO(b"%PDF"), filename="doc.pdf", content_type="application/pdf"
    )
    with pytest.raises(ValidationError):
        MemoryService.upload_memory_photo("u1", upload)
    bucket.blob.assert_not_called()


def test_delete_memory_photo_checks_prefix(app, bucket):
    assert MemoryService.delete_memory_photo(PHOTO, "u1") is True
    bucket.blob.assert_called_with("memory-photos/u1/a.jpg")

    with pytest.raises(ValidationError, match="Invalid photo URL"):
        MemoryService.delete_memory_photo(PHOTO, "u2")
    with pytest.raises(ValidationError):
        MemoryService.delete_memory_photo(
            "https://storage.googleapis.com/test-bucket/avatars/u1.jpg"
        )
