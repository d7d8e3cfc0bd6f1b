"""Profile counter recalculation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app

from bucketly import constants
from bucketly.utils import utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def calculate_profile_stats(db: Client, user_id: str) -> dict[str, int]:
    """Count a user's lists, follows and completed items from source data."""
    lists = (
        db.collection(constants.BUCKET_LISTS)
        .where(filter=firestore.FieldFilter("user_id", "==", user_id))
        .stream()
    )
    lists_created = sum(
        1 for doc in lists if not (doc.to_dict() or {}).get("origin_id")
    )

    follows = (
        db.collection(constants.LIST_FOLLOWERS)
        .where(filter=firestore.FieldFilter("user_id", "==", user_id))
        .stream()
    )
    lists_following = sum(1 for _ in follows)

    completed_items = (
        db.collection(constants.BUCKET_ITEMS)
        .where(filter=firestore.FieldFilter("user_id", "==", user_id))
        .where(filter=firestore.FieldFilter("completed", "==", True))
        .stream()
    )
    items_completed = 0
    total_points = 0
    for doc in completed_items:
        items_completed += 1
        total_points += (doc.to_dict() or {}).get("points") or 0

    return {
        "lists_created": lists_created,
        "lists_following": lists_following,
        "items_completed": items_completed,
        "total_points": total_points,
    }


def update_profile_stats(db: Client, user_id: str) -> dict[str, int]:
    """Recompute and store a user's profile counters."""
    stats = calculate_profile_stats(db, user_id)
    profile_ref = db.collection(constants.PROFILES).document(user_id)
    profile = cast("DocumentSnapshot", profile_ref.get())
    if not profile.exists:
        current_app.logger.warning(f"Stats computed for missing profile {user_id}")
        return stats
    profile_ref.update({**stats, "updated_at": utcnow()})
    return stats


def update_follow_counts(db: Client, user_id: str) -> dict[str, Any]:
    """Recompute followers_count and following_count for a user."""
    follows = db.collection(constants.USER_FOLLOWS)
    counts = {
        "followers_count": sum(
            1
            for _ in follows.where(
                filter=firestore.FieldFilter("following_id", "==", user_id)
            ).stream()
        ),
        "following_count": sum(
            1
            for _ in follows.where(
                filter=firestore.FieldFilter("follower_id", "==", user_id)
            ).stream()
        ),
    }
    profile_ref = db.collection(constants.PROFILES).document(user_id)
    if cast("DocumentSnapshot", profile_ref.get()).exists:
        profile_ref.update(counts)
    return counts
