"""Core bucket list operations: reading, creating, editing and cloning lists."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from bucketly import constants
from bucketly.audit import log_audit_action
from bucketly.badges.services import BadgeService
from bucketly.core.validation import (
    validate_category,
    validate_difficulty,
    validate_item_title,
    validate_list_name,
    validate_points,
)
from bucketly.errors import ForbiddenError, NotFoundError
from bucketly.social.services import SocialService
from bucketly.user.services.stats import update_profile_stats
from bucketly.utils import chunked, doc_to_dict, sort_newest_first, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

LIST_EDITABLE_FIELDS = ("name", "description", "category", "is_public")
SHADOW_LIST_MESSAGE = "Cannot modify a followed list"


def get_list_ref(
    db: Client, list_id: str
) -> tuple[DocumentReference, dict[str, Any]]:
    """Return a list's reference and data, or raise NotFoundError."""
    ref = db.collection(constants.BUCKET_LISTS).document(list_id)
    doc = cast("DocumentSnapshot", ref.get())
    if not doc.exists:
        raise NotFoundError("Bucket list not found.")
    return ref, doc.to_dict() or {}


def is_shadow_list(db: Client, list_id: str) -> bool:
    """Whether a list is a copy created by following another list."""
    ref = db.collection(constants.BUCKET_LISTS).document(list_id)
    doc = cast("DocumentSnapshot", ref.get())
    return doc.exists and bool((doc.to_dict() or {}).get("origin_id"))


def fetch_items_for_lists(
    db: Client, list_ids: list[str]
) -> dict[str, list[dict[str, Any]]]:
    """Load the items of several lists, oldest first within each list."""
    items: dict[str, list[dict[str, Any]]] = {list_id: [] for list_id in list_ids}
    for chunk in chunked(list_ids, constants.IN_QUERY_LIMIT):
        query = db.collection(constants.BUCKET_ITEMS).where(
            filter=firestore.FieldFilter("bucket_list_id", "in", chunk)
        )
        for doc in query.stream():
            item = doc_to_dict(doc)
            items.setdefault(item["bucket_list_id"], []).append(item)
    for list_id, list_items in items.items():
        items[list_id] = sort_newest_first(list_items)[::-1]
    return items


def fetch_followed_list_ids(db: Client, user_id: str) -> set[str]:
    followed = (
        db.collection(constants.LIST_FOLLOWERS)
        .where(filter=firestore.FieldFilter("user_id", "==", user_id))
        .stream()
    )
    return {(doc.to_dict() or {}).get("bucket_list_id") for doc in followed} - {None}


def hydrate_lists(
    db: Client, lists: list[dict[str, Any]], user_id: Optional[str] = None
) -> list[dict[str, Any]]:
    """Attach items, owner summary and, for a signed-in user, is_following."""
    if not lists:
        return lists
    items = fetch_items_for_lists(db, [row["id"] for row in lists])

    owner_ids = list({row["user_id"] for row in lists if row.get("user_id")})
    owners: dict[str, dict[str, Any]] = {}
    if owner_ids:
        refs = [db.collection(constants.PROFILES).document(uid) for uid in owner_ids]
        for doc in db.get_all(refs):
            if doc.exists:
                data = doc.to_dict() or {}
                owners[doc.id] = {
                    "username": data.get("username"),
                    "avatar_url": data.get("avatar_url"),
                }

    followed = fetch_followed_list_ids(db, user_id) if user_id else set()
    for row in lists:
        row["items"] = items.get(row["id"], [])
        row["owner"] = owners.get(row.get("user_id", ""))
        if user_id:
            row["is_following"] = row["id"] in followed
    return lists


def fetch_user_lists(
    db: Client, user_id: str, only_owned: bool = False
) -> list[dict[str, Any]]:
    """Fetch a user's lists, newest first.

    Shadow lists are shown only while the user still follows their origin.
    With ``only_owned`` every shadow list is hidden.
    """
    query = db.collection(constants.BUCKET_LISTS).where(
        filter=firestore.FieldFilter("user_id", "==", user_id)
    )
    lists = sort_newest_first([doc_to_dict(doc) for doc in query.stream()])

    if only_owned:
        lists = [row for row in lists if not row.get("origin_id")]
    else:
        followed = fetch_followed_list_ids(db, user_id)
        lists = [
            row
            for row in lists
            if not row.get("origin_id") or row["origin_id"] in followed
        ]
    return hydrate_lists(db, lists)


def fetch_list(
    db: Client, list_id: str, user_id: Optional[str] = None
) -> dict[str, Any]:
    """Fetch a list with its items. Private lists are visible to their owner only."""
    _, data = get_list_ref(db, list_id)
    if not data.get("is_public") and data.get("user_id") != user_id:
        raise NotFoundError("Bucket list not found.")
    row = {**data, "id": list_id}
    hydrated = hydrate_lists(db, [row], user_id)[0]
    hydrated.setdefault("is_following", False)
    return hydrated


def _clean_item(item: dict[str, Any]) -> dict[str, Any]:
    title = (item.get("title") or "").strip()
    validate_item_title(title).raise_for_error()
    points = item.get("points")
    if points not in (None, 0):
        validate_points(points).raise_for_error()
    validate_difficulty(item.get("difficulty")).raise_for_error()
    return {
        "title": title,
        "description": (item.get("description") or "").strip() or None,
        "points": int(points or 0),
        "difficulty": item.get("difficulty") or None,
        "location": (item.get("location") or "").strip() or None,
        "target_value": item.get("target_value") or 0,
        "unit_type": item.get("unit_type") or None,
        "current_value": 0,
    }


def new_item_document(
    list_id: str, owner_id: str, item: dict[str, Any]
) -> dict[str, Any]:
    """Build a stored item from validated fields."""
    now = utcnow()
    return {
        **item,
        "bucket_list_id": list_id,
        "user_id": owner_id,
        "completed": False,
        "completed_date": None,
        "created_at": now,
        "updated_at": now,
    }


def _insert_items(
    db: Client,
    list_ref: DocumentReference,
    owner_id: str,
    items: list[dict[str, Any]],
) -> None:
    """Write new items for a list in batches that stay under the write cap.

    A failed write removes the list again so no empty list is left behind.
    """
    items_collection = db.collection(constants.BUCKET_ITEMS)
    try:
        for chunk in chunked(items, constants.FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for item in chunk:
                batch.set(
                    items_collection.document(),
                    new_item_document(list_ref.id, owner_id, item),
                )
            batch.commit()
    except Exception:
        list_ref.delete()
        raise


def create_list(
    db: Client,
    user_id: str,
    name: str,
    category: str,
    description: Optional[str] = None,
    is_public: bool = False,
    items: Optional[list[dict[str, Any]]] = None,
    is_admin: bool = False,
) -> dict[str, Any]:
    """Create a list and its initial items.

    Only administrators may publish lists; for everyone else the list is
    created private regardless of ``is_public``.
    """
    name = (name or "").strip()
    validate_list_name(name).raise_for_error()
    validate_category(category).raise_for_error()
    cleaned_items = [_clean_item(item) for item in items or []]
    final_is_public = bool(is_public and is_admin)

    now = utcnow()
    list_data = {
        "user_id": user_id,
        "name": name,
        "description": (description or "").strip() or None,
        "category": category,
        "is_public": final_is_public,
        "follower_count": 0,
        "origin_id": None,
        "created_at": now,
        "updated_at": now,
    }
    _, list_ref = db.collection(constants.BUCKET_LISTS).add(list_data)

    _insert_items(db, list_ref, user_id, cleaned_items)

    SocialService.create_timeline_event(
        db,
        user_id,
        constants.EVENT_LIST_CREATED,
        f"Created: {name}",
        f"Started a new {category} bucket list",
        {
            "list_id": list_ref.id,
            "category": category,
            "items_count": len(cleaned_items),
        },
        is_public=final_is_public,
    )
    update_profile_stats(db, user_id)
    BadgeService.check_and_award_badges(db, user_id)

    return {**list_data, "id": list_ref.id}


def _require_editable(
    db: Client, user_id: str, list_id: str, action: str
) -> tuple[DocumentReference, dict[str, Any]]:
    """Load a list the user owns and that is not a shadow copy."""
    ref, data = get_list_ref(db, list_id)
    if data.get("user_id") != user_id:
        log_audit_action(
            db, user_id, action, list_id, "bucket_list", constants.AUDIT_DENIED
        )
        raise ForbiddenError("You can only modify your own lists.")
    if data.get("origin_id"):
        log_audit_action(
            db,
            user_id,
            action,
            list_id,
            "bucket_list",
            constants.AUDIT_DENIED,
            {"reason": "shadow_list"},
        )
        raise ForbiddenError(SHADOW_LIST_MESSAGE)
    return ref, data


def update_list(
    db: Client,
    user_id: str,
    list_id: str,
    updates: dict[str, Any],
    is_admin: bool = False,
) -> dict[str, Any]:
    """Edit an authored list's name, description, category or visibility."""
    ref, data = _require_editable(db, user_id, list_id, "update_bucket_list")

    payload = {k: v for k, v in updates.items() if k in LIST_EDITABLE_FIELDS}
    if "name" in payload:
        payload["name"] = (payload["name"] or "").strip()
        validate_list_name(payload["name"]).raise_for_error()
    if "category" in payload:
        validate_category(payload["category"]).raise_for_error()
    if "description" in payload:
        payload["description"] = (payload["description"] or "").strip() or None
    if payload.get("is_public") and not is_admin:
        payload["is_public"] = False
    payload["updated_at"] = utcnow()

    ref.update(payload)
    log_audit_action(
        db,
        user_id,
        "update_bucket_list",
        list_id,
        "bucket_list",
        metadata={"fields": sorted(k for k in payload if k != "updated_at")},
    )
    return {**data, **payload, "id": list_id}


def delete_list(db: Client, user_id: str, list_id: str) -> None:
    """Delete an authored list together with its items and follower records."""
    ref, _ = _require_editable(db, user_id, list_id, "delete_bucket_list")

    batch = db.batch()
    writes = 0
    for collection, field in (
        (constants.BUCKET_ITEMS, "bucket_list_id"),
        (constants.LIST_FOLLOWERS, "bucket_list_id"),
    ):
        query = db.collection(collection).where(
            filter=firestore.FieldFilter(field, "==", list_id)
        )
        for doc in query.stream():
            batch.delete(doc.reference)
            writes += 1
            if writes % constants.FIRESTORE_BATCH_LIMIT == 0:
                batch.commit()
                batch = db.batch()
    batch.delete(ref)
    batch.commit()

    log_audit_action(db, user_id, "delete_bucket_list", list_id, "bucket_list")
    update_profile_stats(db, user_id)


def clone_list(db: Client, user_id: str, source_list_id: str) -> dict[str, Any]:
    """Copy a list into a private shadow list owned by user_id.

    Items are copied with their progress reset.
    """
    _, source = get_list_ref(db, source_list_id)
    if not source.get("is_public") and source.get("user_id") != user_id:
        raise NotFoundError("Bucket list not found.")

    now = utcnow()
    list_data = {
        "user_id": user_id,
        "name": source.get("name"),
        "description": source.get("description"),
        "category": source.get("category", constants.DEFAULT_CATEGORY),
        "is_public": False,
        "follower_count": 0,
        "origin_id": source_list_id,
        "created_at": now,
        "updated_at": now,
    }
    _, list_ref = db.collection(constants.BUCKET_LISTS).add(list_data)

    source_items = fetch_items_for_lists(db, [source_list_id])[source_list_id]
    copies = []
    for item in source_items:
        copied = {
            key: item.get(key)
            for key in (
                "title",
                "description",
                "points",
                "difficulty",
                "location",
                "target_value",
                "unit_type",
            )
        }
        copied["current_value"] = 0
        copies.append(copied)
    _insert_items(db, list_ref, user_id, copies)

    SocialService.create_timeline_event(
        db,
        user_id,
        constants.EVENT_LIST_CREATED,
        f"Added list: {list_data['name']}",
        f'Started tracking "{list_data["name"]}"',
        {
            "list_id": list_ref.id,
            "original_list_id": source_list_id,
            "category": list_data["category"],
        },
        is_public=False,
    )
    update_profile_stats(db, user_id)

    return {**list_data, "id": list_ref.id}
