"""Bucket item operations, including optimistic completion toggling."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from bucketly import constants
from bucketly.audit import log_audit_action
from bucketly.badges.services import BadgeService
from bucketly.core.optimistic import OptimisticUpdate
from bucketly.core.validation import (
    validate_difficulty,
    validate_item_title,
    validate_points,
)
from bucketly.errors import ForbiddenError, NotFoundError, ValidationError
from bucketly.social.services import SocialService
from bucketly.user.services.stats import update_profile_stats
from bucketly.utils import utcnow

from .core import _clean_item, get_list_ref, new_item_document

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

ITEM_EDITABLE_FIELDS = (
    "title",
    "description",
    "points",
    "difficulty",
    "location",
    "current_value",
    "target_value",
    "unit_type",
)
SHADOW_EDITABLE_FIELDS = ("current_value",)


def get_item_ref(
    db: Client, item_id: str
) -> tuple[DocumentReference, dict[str, Any]]:
    ref = db.collection(constants.BUCKET_ITEMS).document(item_id)
    doc = cast("DocumentSnapshot", ref.get())
    if not doc.exists:
        raise NotFoundError("Item not found.")
    return ref, doc.to_dict() or {}


def _owned_item(
    db: Client, user_id: str, item_id: str, action: str
) -> tuple[DocumentReference, dict[str, Any], dict[str, Any]]:
    """Load an item, its list, and check the user owns the list."""
    ref, item = get_item_ref(db, item_id)
    _, bucket_list = get_list_ref(db, item["bucket_list_id"])
    if bucket_list.get("user_id") != user_id:
        log_audit_action(
            db, user_id, action, item_id, "bucket_item", constants.AUDIT_DENIED
        )
        raise ForbiddenError("You can only modify items on your own lists.")
    return ref, item, bucket_list


def add_item(
    db: Client, user_id: str, list_id: str, item_data: dict[str, Any]
) -> dict[str, Any]:
    """Add an item to an authored list. Shadow lists cannot gain items."""
    _, bucket_list = get_list_ref(db, list_id)
    if bucket_list.get("user_id") != user_id:
        raise ForbiddenError("You can only add items to your own lists.")
    if bucket_list.get("origin_id"):
        log_audit_action(
            db,
            user_id,
            "add_bucket_item",
            list_id,
            "bucket_list",
            constants.AUDIT_DENIED,
            {"title": item_data.get("title")},
        )
        raise ForbiddenError("Cannot add items to a followed list")

    item = new_item_document(list_id, user_id, _clean_item(item_data))
    if item_data.get("current_value"):
        item["current_value"] = item_data["current_value"]
    _, ref = db.collection(constants.BUCKET_ITEMS).add(item)
    return {**item, "id": ref.id}


def update_item(
    db: Client, user_id: str, item_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    """Edit an item.

    Items on shadow lists only accept progress (``current_value``) changes.
    """
    ref, item, bucket_list = _owned_item(db, user_id, item_id, "update_bucket_item")
    payload = {k: v for k, v in updates.items() if k in ITEM_EDITABLE_FIELDS}
    is_shadow = bool(bucket_list.get("origin_id"))

    if is_shadow and any(key not in SHADOW_EDITABLE_FIELDS for key in payload):
        log_audit_action(
            db,
            user_id,
            "update_bucket_item",
            item_id,
            "bucket_item",
            constants.AUDIT_DENIED,
            {"fields": sorted(payload)},
        )
        raise ForbiddenError("Followed list items cannot be edited")

    if "title" in payload:
        payload["title"] = (payload["title"] or "").strip()
        validate_item_title(payload["title"]).raise_for_error()
    if payload.get("points") not in (None, 0):
        validate_points(payload["points"]).raise_for_error()
    if "difficulty" in payload:
        validate_difficulty(payload["difficulty"]).raise_for_error()
    if "current_value" in payload and (payload["current_value"] or 0) < 0:
        raise ValidationError("Progress cannot be negative.")

    payload["updated_at"] = utcnow()
    ref.update(payload)
    log_audit_action(
        db,
        user_id,
        "update_bucket_item",
        item_id,
        "bucket_item",
        metadata={"fields": sorted(payload), "is_shadow": is_shadow},
    )
    return {**item, **payload, "id": item_id}


def delete_item(db: Client, user_id: str, item_id: str) -> None:
    ref, item, bucket_list = _owned_item(db, user_id, item_id, "delete_bucket_item")
    if bucket_list.get("origin_id"):
        log_audit_action(
            db,
            user_id,
            "delete_bucket_item",
            item_id,
            "bucket_item",
            constants.AUDIT_DENIED,
        )
        raise ForbiddenError("Followed list items cannot be deleted")

    ref.delete()
    log_audit_action(db, user_id, "delete_bucket_item", item_id, "bucket_item")
    if item.get("completed"):
        update_profile_stats(db, user_id)


def toggle_item_completion(
    db: Client, user_id: str, item_id: str, completed: bool
) -> dict[str, Any]:
    """Mark an item complete or incomplete.

    The item write is applied first and reverted if the profile counters
    cannot be recalculated afterwards, so the item and the counters never
    disagree. Completing an item records one private ``item_completed``
    timeline event, refreshes global ranks and runs the badge sweep;
    un-completing removes the event again.
    """
    ref, item, bucket_list = _owned_item(
        db, user_id, item_id, "toggle_item_completion"
    )
    owner_id = bucket_list["user_id"]
    now = utcnow()
    previous = {
        "completed": item.get("completed", False),
        "completed_date": item.get("completed_date"),
        "updated_at": item.get("updated_at"),
    }
    changes = {
        "completed": completed,
        "completed_date": now if completed else None,
        "updated_at": now,
    }

    OptimisticUpdate(
        apply=lambda: ref.update(changes),
        revert=lambda: ref.update(previous),
    ).run(lambda: update_profile_stats(db, owner_id))

    existing_events = SocialService.find_timeline_events(
        db, owner_id, constants.EVENT_ITEM_COMPLETED, item_id=item_id
    )
    if completed:
        if not existing_events:
            SocialService.create_timeline_event(
                db,
                owner_id,
                constants.EVENT_ITEM_COMPLETED,
                f"Completed: {item.get('title')}",
                item.get("description"),
                {
                    "item_id": item_id,
                    "points": item.get("points") or 0,
                    "category": bucket_list.get("category"),
                },
                is_public=False,
            )
        SocialService.recalculate_global_ranks(db)
        BadgeService.check_and_award_badges(db, owner_id)
    else:
        for event in existing_events:
            event.reference.delete()

    return {**item, **changes, "id": item_id}
