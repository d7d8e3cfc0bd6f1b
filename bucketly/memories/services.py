"""Service for memories: reflections and photos attached to bucket items."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore
from flask import current_app

from bucketly import constants
from bucketly.core.sanitization import create_safe_display_name, sanitize_photo_url
from bucketly.core.validation import (
    file_size,
    validate_file_upload,
    validate_reflection,
)
from bucketly.errors import ForbiddenError, NotFoundError, ValidationError
from bucketly.lists.services.core import get_list_ref
from bucketly.lists.services.items import get_item_ref
from bucketly.social.services import SocialService
from bucketly.storage import (
    build_object_path,
    compress_image,
    delete_by_url,
    object_path_from_url,
    upload_bytes,
)
from bucketly.utils import doc_to_dict, sort_newest_first, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from werkzeug.datastructures import FileStorage

MEMORY_PHOTOS_PREFIX = "memory-photos"
MEMORY_EDITABLE_FIELDS = ("reflection", "photos", "is_public")


def _memory_id(user_id: str, item_id: str) -> str:
    return f"{user_id}_{item_id}"


def _clean_photos(photos: Optional[list[str]]) -> list[str]:
    """Keep only photo URLs served from the configured storage hosts."""
    allowed_domains = current_app.config.get("PHOTO_ALLOWED_DOMAINS", [])
    cleaned = []
    for url in photos or []:
        safe_url = sanitize_photo_url(url, allowed_domains)
        if safe_url:
            cleaned.append(safe_url)
    return cleaned


def _visible_item(
    db: Client, item_id: str, user_id: Optional[str]
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Load an item and its list, hiding items on other users' private lists."""
    _, item = get_item_ref(db, item_id)
    _, bucket_list = get_list_ref(db, item["bucket_list_id"])
    if not bucket_list.get("is_public") and bucket_list.get("user_id") != user_id:
        raise NotFoundError("Item not found.")
    return item, bucket_list


class MemoryService:
    """Service class for memory-related operations."""

    @staticmethod
    def _owned_ref(
        db: Client, memory_id: str, user_id: str
    ) -> tuple[DocumentReference, dict[str, Any]]:
        ref = db.collection(constants.MEMORIES).document(memory_id)
        doc = cast("DocumentSnapshot", ref.get())
        if not doc.exists:
            raise NotFoundError("Memory not found.")
        data = doc.to_dict() or {}
        if data.get("user_id") != user_id:
            raise ForbiddenError("You can only manage your own memories.")
        return ref, data

    @staticmethod
    def create_memory(
        db: Client,
        user_id: str,
        item_id: str,
        reflection: str,
        photos: Optional[list[str]] = None,
        is_public: bool = False,
    ) -> dict[str, Any]:
        """Save the user's memory for an item, replacing any earlier one.

        Public memories are announced on the timeline, as a new share or as
        an update depending on whether the user already had a memory here.
        """
        reflection = (reflection or "").strip()
        validate_reflection(reflection).raise_for_error()
        item, bucket_list = _visible_item(db, item_id, user_id)

        ref = db.collection(constants.MEMORIES).document(_memory_id(user_id, item_id))
        existing = cast("DocumentSnapshot", ref.get())
        now = utcnow()
        data = {
            "reflection": reflection,
            "photos": _clean_photos(photos),
            "is_public": bool(is_public),
            "updated_at": now,
        }
        is_update = existing.exists
        if is_update:
            ref.update(data)
            memory = {**(existing.to_dict() or {}), **data}
        else:
            memory = {
                **data,
                "user_id": user_id,
                "bucket_item_id": item_id,
                "created_at": now,
            }
            ref.set(memory)

        if is_public:
            title = (
                f"Updated memory: {item.get('title')}"
                if is_update
                else f"Shared a memory: {item.get('title')}"
            )
            SocialService.create_timeline_event(
                db,
                user_id,
                constants.EVENT_MEMORY_SHARED,
                title,
                reflection,
                {
                    "memory_id": ref.id,
                    "item_id": item_id,
                    "item_title": item.get("title"),
                    "list_name": bucket_list.get("name"),
                    "category": bucket_list.get("category"),
                    "photos": data["photos"],
                    "is_update": is_update,
                },
            )
        return {**memory, "id": ref.id}

    @staticmethod
    def update_memory(
        db: Client, user_id: str, memory_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        ref, data = MemoryService._owned_ref(db, memory_id, user_id)
        payload = {k: v for k, v in updates.items() if k in MEMORY_EDITABLE_FIELDS}
        if "reflection" in payload:
            payload["reflection"] = (payload["reflection"] or "").strip()
            validate_reflection(payload["reflection"]).raise_for_error()
        if "photos" in payload:
            payload["photos"] = _clean_photos(payload["photos"])
        if "is_public" in payload:
            payload["is_public"] = bool(payload["is_public"])
        payload["updated_at"] = utcnow()
        ref.update(payload)
        return {**data, **payload, "id": memory_id}

    @staticmethod
    def delete_memory(db: Client, user_id: str, memory_id: str) -> None:
        """Delete a memory and the timeline events that announced it."""
        ref, _ = MemoryService._owned_ref(db, memory_id, user_id)
        try:
            for event in SocialService.find_timeline_events(
                db, user_id, memory_id=memory_id
            ):
                event.reference.delete()
        except Exception as e:
            current_app.logger.error(
                f"Error deleting timeline events for memory {memory_id}: {e}"
            )
        ref.delete()

    @staticmethod
    def fetch_memories_for_item(
        db: Client, item_id: str, viewer_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """Memories on an item that the viewer may see, with author details."""
        _visible_item(db, item_id, viewer_id)
        query = db.collection(constants.MEMORIES).where(
            filter=firestore.FieldFilter("bucket_item_id", "==", item_id)
        )
        memories = [
            doc_to_dict(doc)
            for doc in query.stream()
            if (doc.to_dict() or {}).get("is_public")
            or (doc.to_dict() or {}).get("user_id") == viewer_id
        ]
        if not memories:
            return []

        refs = [
            db.collection(constants.PROFILES).document(row["user_id"])
            for row in memories
        ]
        authors = {
            doc.id: doc.to_dict() or {} for doc in db.get_all(refs) if doc.exists
        }
        for row in memories:
            author = authors.get(row["user_id"], {})
            row["profile"] = {
                "username": create_safe_display_name(author.get("username")),
                "avatar_url": author.get("avatar_url"),
            }
        return sort_newest_first(memories)

    @staticmethod
    def fetch_user_memory_for_item(
        db: Client, user_id: str, item_id: str
    ) -> Optional[dict[str, Any]]:
        doc = cast(
            "DocumentSnapshot",
            db.collection(constants.MEMORIES)
            .document(_memory_id(user_id, item_id))
            .get(),
        )
        return doc_to_dict(doc) if doc.exists else None

    @staticmethod
    def fetch_memories_for_user(
        db: Client, user_id: str, viewer_id: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """A user's memories, newest first, with the item title and list name.

        Other viewers only see the public ones.
        """
        query = db.collection(constants.MEMORIES).where(
            filter=firestore.FieldFilter("user_id", "==", user_id)
        )
        memories = [doc_to_dict(doc) for doc in query.stream()]
        if viewer_id != user_id:
            memories = [row for row in memories if row.get("is_public")]
        if not memories:
            return []

        item_refs = [
            db.collection(constants.BUCKET_ITEMS).document(row["bucket_item_id"])
            for row in memories
        ]
        items = {
            doc.id: doc_to_dict(doc) for doc in db.get_all(item_refs) if doc.exists
        }
        list_refs = [
            db.collection(constants.BUCKET_LISTS).document(item["bucket_list_id"])
            for item in items.values()
        ]
        lists = (
            {doc.id: doc_to_dict(doc) for doc in db.get_all(list_refs) if doc.exists}
            if list_refs
            else {}
        )

        for row in memories:
            item = items.get(row["bucket_item_id"])
            if not item:
                row["bucket_item"] = None
                continue
            bucket_list = lists.get(item["bucket_list_id"], {})
            row["bucket_item"] = {
                "id": item["id"],
                "title": item.get("title"),
                "bucket_list_id": item["bucket_list_id"],
                "bucket_list": {
                    "id": item["bucket_list_id"],
                    "name": bucket_list.get("name"),
                    "category": bucket_list.get("category"),
                },
            }
        return sort_newest_first(memories)

    @staticmethod
    def upload_memory_photo(user_id: str, file_storage: FileStorage) -> str:
        """Validate, compress and store a memory photo, returning its URL."""
        filename = file_storage.filename or "photo"
        validate_file_upload(
            filename, file_storage.mimetype, file_size(file_storage)
        ).raise_for_error()
        image = compress_image(
            file_storage.read(),
            constants.MEMORY_PHOTO_MAX_DIMENSION,
            constants.MEMORY_PHOTO_TARGET_SIZE,
        )
        path = build_object_path(MEMORY_PHOTOS_PREFIX, user_id, filename)
        return upload_bytes(path, image)

    @staticmethod
    def delete_memory_photo(photo_url: str, user_id: Optional[str] = None) -> bool:
        """Remove a stored memory photo. With user_id, only that user's photos."""
        prefix = f"{MEMORY_PHOTOS_PREFIX}/"
        if user_id:
            prefix += f"{user_id}/"
        path = object_path_from_url(photo_url)
        if not path or not path.startswith(prefix):
            raise ValidationError("Invalid photo URL")
        return delete_by_url(photo_url)
