"""Export of everything stored about a user."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from bucketly import constants
from bucketly.utils import doc_to_dict, utcnow

from .profile import fetch_user_profile

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

EXPORT_VERSION = "1.0"


def _to_json_value(value: Any) -> Any:
    """Convert timestamps to ISO strings, recursing into dicts and lists."""
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _to_json_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_json_value(item) for item in value]
    return value


def _rows(db: Client, collection: str, field: str, user_id: str) -> list[dict]:
    query = db.collection(collection).where(
        filter=firestore.FieldFilter(field, "==", user_id)
    )
    return [doc_to_dict(doc) for doc in query.stream()]


def export_user_data(db: Client, user_id: str) -> dict[str, Any]:
    """Collect a user's profile and content into one JSON-ready document."""
    profile = fetch_user_profile(db, user_id)
    lists = _rows(db, constants.BUCKET_LISTS, "user_id", user_id)
    list_names = {row["id"]: row.get("name") for row in lists}

    items = _rows(db, constants.BUCKET_ITEMS, "user_id", user_id)
    for item in items:
        item["bucket_list_name"] = list_names.get(item.get("bucket_list_id"))

    earned_badges = _rows(db, constants.USER_BADGES, "user_id", user_id)

    export = {
        "user": {
            "id": user_id,
            "email": profile.get("email"),
            "username": profile.get("username"),
            "avatar_url": profile.get("avatar_url"),
            "bio": profile.get("bio"),
            "created_at": profile.get("created_at"),
            "updated_at": profile.get("updated_at"),
            "statistics": {
                "total_points": profile.get("total_points"),
                "global_rank": profile.get("global_rank"),
                "items_completed": profile.get("items_completed"),
                "lists_created": profile.get("lists_created"),
                "lists_following": profile.get("lists_following"),
            },
        },
        "data": {
            "bucket_lists": lists,
            "bucket_items": items,
            "memories": _rows(db, constants.MEMORIES, "user_id", user_id),
            "timeline_events": _rows(
                db, constants.TIMELINE_EVENTS, "user_id", user_id
            ),
            "following": _rows(db, constants.USER_FOLLOWS, "follower_id", user_id),
            "list_follows": _rows(db, constants.LIST_FOLLOWERS, "user_id", user_id),
            "badges": earned_badges,
            "notifications": _rows(db, constants.NOTIFICATIONS, "user_id", user_id),
        },
        "export_metadata": {
            "exported_at": utcnow(),
            "version": EXPORT_VERSION,
            "format": "json",
        },
    }
    return _to_json_value(export)
