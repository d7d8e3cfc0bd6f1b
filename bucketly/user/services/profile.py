"""Service for user profile management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app

from bucketly import constants
from bucketly.core.realtime import MODIFIED, Subscription
from bucketly.core.sanitization import sanitize_url
from bucketly.core.validation import (
    file_size,
    validate_avatar_upload,
    validate_bio,
    validate_username,
)
from bucketly.errors import DuplicateResourceError, NotFoundError, ValidationError
from bucketly.storage import (
    compress_image,
    delete_by_url,
    object_path_from_url,
    upload_bytes,
)
from bucketly.utils import doc_to_dict, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from werkzeug.datastructures import FileStorage

    from bucketly.core.types import Profile

SOCIAL_URL_FIELDS = (
    "twitter_url",
    "instagram_url",
    "linkedin_url",
    "github_url",
    "website_url",
)
EDITABLE_FIELDS = ("username", "avatar_url", "bio", "is_private", *SOCIAL_URL_FIELDS)
AVATAR_MAX_BYTES = 512 * 1024


def new_profile(username: str, email: str) -> Profile:
    """Build the document of a freshly registered profile."""
    now = utcnow()
    return {
        "username": username,
        "email": email,
        "avatar_url": None,
        "bio": None,
        "is_private": False,
        "items_completed": 0,
        "lists_created": 0,
        "lists_following": 0,
        "total_points": 0,
        "global_rank": None,
        "followers_count": 0,
        "following_count": 0,
        "created_at": now,
        "updated_at": now,
    }


def fetch_user_profile(db: Client, user_id: str) -> dict[str, Any]:
    doc = cast(
        "DocumentSnapshot", db.collection(constants.PROFILES).document(user_id).get()
    )
    if not doc.exists:
        raise NotFoundError("Profile not found.")
    return doc_to_dict(doc)


def fetch_profile_by_username(db: Client, username: str) -> dict[str, Any]:
    docs = list(
        db.collection(constants.PROFILES)
        .where(filter=firestore.FieldFilter("username", "==", username))
        .limit(1)
        .stream()
    )
    if not docs:
        raise NotFoundError("Profile not found.")
    return doc_to_dict(docs[0])


def check_username_availability(
    db: Client, username: str, exclude_user_id: str | None = None
) -> bool:
    """Check if a username is free, ignoring the profile of exclude_user_id."""
    existing = (
        db.collection(constants.PROFILES)
        .where(filter=firestore.FieldFilter("username", "==", username))
        .stream()
    )
    return all(doc.id == exclude_user_id for doc in existing)


def update_user_profile(
    db: Client, user_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    """Validate and apply profile edits, returning the updated profile.

    Unknown fields are ignored. Usernames must be valid and unused by anyone
    else, bios are capped and social links must be http(s) or relative URLs.
    """
    profile_ref = db.collection(constants.PROFILES).document(user_id)
    if not cast("DocumentSnapshot", profile_ref.get()).exists:
        raise NotFoundError("Profile not found.")

    payload = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}

    if "username" in payload:
        username = (payload["username"] or "").strip()
        validate_username(username).raise_for_error()
        if not check_username_availability(db, username, exclude_user_id=user_id):
            raise DuplicateResourceError("Username is already taken")
        payload["username"] = username

    if "bio" in payload:
        validate_bio(payload["bio"]).raise_for_error()

    for url_field in SOCIAL_URL_FIELDS + ("avatar_url",):
        if payload.get(url_field):
            safe_url = sanitize_url(payload[url_field])
            if not safe_url:
                raise ValidationError(f"Please enter a valid URL for {url_field}.")
            payload[url_field] = safe_url

    if "is_private" in payload:
        payload["is_private"] = bool(payload["is_private"])

    payload["updated_at"] = utcnow()
    profile_ref.update(payload)
    return fetch_user_profile(db, user_id)


def upload_profile_avatar(db: Client, user_id: str, file_storage: FileStorage) -> str:
    """Resize and store a new avatar, removing the previous one."""
    validate_avatar_upload(
        file_storage.mimetype, file_size(file_storage)
    ).raise_for_error()

    profile = fetch_user_profile(db, user_id)
    image = compress_image(
        file_storage.read(), constants.AVATAR_MAX_DIMENSION, AVATAR_MAX_BYTES
    )
    path = f"avatars/{user_id}/avatar-{int(utcnow().timestamp() * 1000)}.jpg"

    old_url = profile.get("avatar_url")
    if old_url:
        old_path = object_path_from_url(old_url)
        if old_path and old_path.startswith(f"avatars/{user_id}/"):
            try:
                delete_by_url(old_url)
            except Exception as e:
                current_app.logger.error(f"Error deleting old avatar {old_path}: {e}")

    public_url = upload_bytes(path, image)
    db.collection(constants.PROFILES).document(user_id).update(
        {"avatar_url": public_url, "updated_at": utcnow()}
    )
    return public_url


def subscribe_to_profile_updates(db: Client, user_id: str) -> Subscription:
    """Open a channel of updates to a single profile."""
    return Subscription(
        db.collection(constants.PROFILES).document(user_id),
        kinds=(MODIFIED,),
        transform=lambda doc_id, data: {**data, "id": doc_id},
    )
