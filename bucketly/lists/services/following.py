"""Following public lists through private shadow copies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists

from bucketly import constants
from bucketly.audit import log_audit_action
from bucketly.badges.services import BadgeService
from bucketly.errors import NotFoundError, ValidationError
from bucketly.social.services import SocialService
from bucketly.user.services.stats import update_profile_stats
from bucketly.utils import utcnow

from .core import clone_list, get_list_ref

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _follower_id(user_id: str, list_id: str) -> str:
    return f"{user_id}_{list_id}"


def _find_shadow_list_id(db: Client, user_id: str, list_id: str) -> Optional[str]:
    query = (
        db.collection(constants.BUCKET_LISTS)
        .where(filter=firestore.FieldFilter("user_id", "==", user_id))
        .where(filter=firestore.FieldFilter("origin_id", "==", list_id))
    )
    for doc in query.stream():
        return doc.id
    return None


def refresh_follower_count(db: Client, list_id: str) -> int:
    """Recount the follower records of a list and store the total."""
    followers = (
        db.collection(constants.LIST_FOLLOWERS)
        .where(filter=firestore.FieldFilter("bucket_list_id", "==", list_id))
        .stream()
    )
    count = sum(1 for _ in followers)
    list_ref = db.collection(constants.BUCKET_LISTS).document(list_id)
    if cast("DocumentSnapshot", list_ref.get()).exists:
        list_ref.update({"follower_count": count})
    return count


def is_following_list(db: Client, user_id: str, list_id: str) -> bool:
    ref = db.collection(constants.LIST_FOLLOWERS).document(
        _follower_id(user_id, list_id)
    )
    return cast("DocumentSnapshot", ref.get()).exists


def follow_list(db: Client, user_id: str, list_id: str) -> dict[str, Any]:
    """Follow a list.

    The first follow creates a private shadow copy of the list for the
    user. Following a list twice is not an error: the result carries
    ``already_following`` instead.
    """
    _, source = get_list_ref(db, list_id)
    if source.get("user_id") == user_id:
        raise ValidationError("You cannot follow your own list.")
    if not source.get("is_public"):
        raise NotFoundError("Bucket list not found.")

    follower_ref = db.collection(constants.LIST_FOLLOWERS).document(
        _follower_id(user_id, list_id)
    )
    try:
        follower_ref.create(
            {"user_id": user_id, "bucket_list_id": list_id, "created_at": utcnow()}
        )
    except AlreadyExists:
        return {"already_following": True}

    shadow_list_id = _find_shadow_list_id(db, user_id, list_id)
    if shadow_list_id is None:
        try:
            shadow_list_id = clone_list(db, user_id, list_id)["id"]
        except Exception:
            # No follower record without a shadow copy.
            follower_ref.delete()
            raise

    refresh_follower_count(db, list_id)
    SocialService.create_timeline_event(
        db,
        user_id,
        constants.EVENT_LIST_FOLLOWED,
        f"Followed: {source.get('name')}",
        metadata={"list_id": list_id, "shadow_list_id": shadow_list_id},
        is_public=False,
    )
    update_profile_stats(db, user_id)
    BadgeService.check_and_award_badges(db, user_id)
    log_audit_action(
        db,
        user_id,
        "follow_bucket_list",
        list_id,
        "bucket_list",
        metadata={"shadow_list_id": shadow_list_id},
    )
    return {"already_following": False, "shadow_list_id": shadow_list_id}


def unfollow_list(db: Client, user_id: str, list_id: str) -> bool:
    """Remove a follow. The shadow copy is kept but hidden from the user's lists."""
    follower_ref = db.collection(constants.LIST_FOLLOWERS).document(
        _follower_id(user_id, list_id)
    )
    if not cast("DocumentSnapshot", follower_ref.get()).exists:
        return False

    follower_ref.delete()
    refresh_follower_count(db, list_id)
    update_profile_stats(db, user_id)
    log_audit_action(db, user_id, "unfollow_bucket_list", list_id, "bucket_list")
    return True
