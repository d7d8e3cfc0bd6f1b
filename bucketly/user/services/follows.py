"""Service for following other users."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists

from bucketly import constants
from bucketly.errors import NotFoundError, ValidationError
from bucketly.utils import doc_to_dict, sort_newest_first, utcnow

from .stats import update_follow_counts

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _follow_id(follower_id: str, following_id: str) -> str:
    return f"{follower_id}_{following_id}"


def _profiles_by_id(db: Client, user_ids: list[str]) -> dict[str, dict[str, Any]]:
    if not user_ids:
        return {}
    refs = [db.collection(constants.PROFILES).document(uid) for uid in user_ids]
    profiles = {}
    for doc in db.get_all(refs):
        if doc.exists:
            data = doc.to_dict() or {}
            profiles[doc.id] = {
                "id": doc.id,
                "username": data.get("username"),
                "avatar_url": data.get("avatar_url"),
                "bio": data.get("bio"),
            }
    return profiles


def follow_user(db: Client, follower_id: str, following_id: str) -> bool:
    """Follow another user. Returns False when the follow already existed."""
    if follower_id == following_id:
        raise ValidationError("You cannot follow yourself")
    target = cast(
        "DocumentSnapshot",
        db.collection(constants.PROFILES).document(following_id).get(),
    )
    if not target.exists:
        raise NotFoundError("User not found")

    ref = db.collection(constants.USER_FOLLOWS).document(
        _follow_id(follower_id, following_id)
    )
    try:
        ref.create(
            {
                "follower_id": follower_id,
                "following_id": following_id,
                "created_at": utcnow(),
            }
        )
    except AlreadyExists:
        return False

    update_follow_counts(db, follower_id)
    update_follow_counts(db, following_id)
    return True


def unfollow_user(db: Client, follower_id: str, following_id: str) -> None:
    db.collection(constants.USER_FOLLOWS).document(
        _follow_id(follower_id, following_id)
    ).delete()
    update_follow_counts(db, follower_id)
    update_follow_counts(db, following_id)


def is_following_user(db: Client, follower_id: str, following_id: str) -> bool:
    doc = cast(
        "DocumentSnapshot",
        db.collection(constants.USER_FOLLOWS)
        .document(_follow_id(follower_id, following_id))
        .get(),
    )
    return doc.exists


def _follow_rows(
    db: Client, field: str, user_id: str, other_field: str, key: str
) -> list[dict[str, Any]]:
    follows = sort_newest_first(
        [
            doc_to_dict(doc)
            for doc in db.collection(constants.USER_FOLLOWS)
            .where(filter=firestore.FieldFilter(field, "==", user_id))
            .stream()
        ]
    )
    profiles = _profiles_by_id(db, [row[other_field] for row in follows])
    rows = []
    for row in follows:
        profile = profiles.get(row[other_field])
        if profile:
            rows.append({**row, key: profile})
    return rows


def get_user_followers(db: Client, user_id: str) -> list[dict[str, Any]]:
    """Followers of a user with their profile summaries, newest first."""
    return _follow_rows(db, "following_id", user_id, "follower_id", "follower")


def get_user_following(db: Client, user_id: str) -> list[dict[str, Any]]:
    """Users a user follows with their profile summaries, newest first."""
    return _follow_rows(db, "follower_id", user_id, "following_id", "following")


def get_user_follower_counts(db: Client, user_id: str) -> dict[str, int]:
    doc = cast(
        "DocumentSnapshot", db.collection(constants.PROFILES).document(user_id).get()
    )
    if not doc.exists:
        raise NotFoundError("Profile not found.")
    data = doc.to_dict() or {}
    return {
        "followers_count": data.get("followers_count") or 0,
        "following_count": data.get("following_count") or 0,
    }
