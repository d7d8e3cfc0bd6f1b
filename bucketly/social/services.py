"""Service for timelines, the social feed and the global leaderboard."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore
from flask import current_app

from bucketly import constants
from bucketly.core.sanitization import create_safe_display_name, sanitize_metadata
from bucketly.errors import NotFoundError, ValidationError
from bucketly.utils import chunked, doc_to_dict, paginate, sort_newest_first, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _profile_summaries(
    db: Client, user_ids: list[str]
) -> dict[str, dict[str, Any]]:
    """Fetch username and avatar for a set of users, keyed by user id."""
    if not user_ids:
        return {}
    refs = [db.collection(constants.PROFILES).document(uid) for uid in user_ids]
    summaries = {}
    for doc in db.get_all(refs):
        if not doc.exists:
            continue
        data = doc.to_dict() or {}
        summaries[doc.id] = {
            "id": doc.id,
            "username": create_safe_display_name(data.get("username")),
            "avatar_url": data.get("avatar_url"),
        }
    return summaries


def _events_for_users(
    db: Client, user_ids: list[str], public_only: bool
) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    for chunk in chunked(user_ids, constants.IN_QUERY_LIMIT):
        query = db.collection(constants.TIMELINE_EVENTS).where(
            filter=firestore.FieldFilter("user_id", "in", chunk)
        )
        if public_only:
            query = query.where(filter=firestore.FieldFilter("is_public", "==", True))
        events.extend(doc_to_dict(doc) for doc in query.stream())
    return events


class SocialService:
    """Service class for timeline, feed and ranking operations."""

    @staticmethod
    def create_timeline_event(
        db: Client,
        user_id: str,
        event_type: str,
        title: str,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        is_public: bool = True,
    ) -> dict[str, Any]:
        """Insert a timeline event and return it with its id."""
        if event_type not in constants.TIMELINE_EVENT_TYPES:
            raise ValidationError(f"Unknown timeline event type: {event_type}")
        data = {
            "user_id": user_id,
            "event_type": event_type,
            "title": title,
            "description": description,
            "metadata": sanitize_metadata(metadata or {}),
            "is_public": is_public,
            "created_at": utcnow(),
        }
        _, ref = db.collection(constants.TIMELINE_EVENTS).add(data)
        return {**data, "id": ref.id}

    @staticmethod
    def find_timeline_events(
        db: Client, user_id: str, event_type: Optional[str] = None, **metadata: Any
    ) -> list[DocumentSnapshot]:
        """Return a user's events whose metadata contains all given key/values."""
        query = db.collection(constants.TIMELINE_EVENTS).where(
            filter=firestore.FieldFilter("user_id", "==", user_id)
        )
        if event_type:
            query = query.where(
                filter=firestore.FieldFilter("event_type", "==", event_type)
            )
        matches = []
        for doc in query.stream():
            event_metadata = (doc.to_dict() or {}).get("metadata") or {}
            if all(event_metadata.get(k) == v for k, v in metadata.items()):
                matches.append(doc)
        return matches

    @staticmethod
    def fetch_user_timeline(
        db: Client,
        user_id: str,
        page: int = 0,
        page_size: int = constants.TIMELINE_PAGE_SIZE,
        public_only: bool = False,
    ) -> dict[str, Any]:
        """Fetch one page of a user's timeline, newest first."""
        events = _events_for_users(db, [user_id], public_only)
        return paginate(sort_newest_first(events), page, page_size)

    @staticmethod
    def fetch_followed_user_ids(db: Client, user_id: str) -> list[str]:
        """Owners of the lists a user follows, excluding the user."""
        followed = (
            db.collection(constants.LIST_FOLLOWERS)
            .where(filter=firestore.FieldFilter("user_id", "==", user_id))
            .stream()
        )
        list_ids = [(doc.to_dict() or {}).get("bucket_list_id") for doc in followed]
        list_refs = [
            db.collection(constants.BUCKET_LISTS).document(list_id)
            for list_id in list_ids
            if list_id
        ]
        owner_ids: list[str] = []
        if list_refs:
            for doc in db.get_all(list_refs):
                owner_id = (doc.to_dict() or {}).get("user_id") if doc.exists else None
                if owner_id and owner_id != user_id and owner_id not in owner_ids:
                    owner_ids.append(owner_id)
        return owner_ids

    @staticmethod
    def fetch_followed_users(db: Client, user_id: str) -> list[dict[str, Any]]:
        owner_ids = SocialService.fetch_followed_user_ids(db, user_id)
        summaries = _profile_summaries(db, owner_ids)
        return [summaries[uid] for uid in owner_ids if uid in summaries]

    @staticmethod
    def fetch_social_feed(
        db: Client,
        user_id: str,
        page: int = 0,
        page_size: int = constants.FEED_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Public events of the owners of lists the user follows, newest first."""
        owner_ids = SocialService.fetch_followed_user_ids(db, user_id)
        if not owner_ids:
            return {"events": [], "has_more": False}

        events = sort_newest_first(_events_for_users(db, owner_ids, public_only=True))
        result = paginate(events, page, page_size)
        summaries = _profile_summaries(
            db, list({event["user_id"] for event in result["data"]})
        )
        for event in result["data"]:
            summary = summaries.get(event["user_id"], {})
            event["username"] = summary.get("username")
            event["avatar_url"] = summary.get("avatar_url")
        return {"events": result["data"], "has_more": result["has_more"]}

    @staticmethod
    def _ranked_profiles(db: Client) -> list[dict[str, Any]]:
        """All profiles ordered by points with competition ranks (1, 2, 2, 4)."""
        profiles = [
            doc_to_dict(doc) for doc in db.collection(constants.PROFILES).stream()
        ]
        profiles.sort(
            key=lambda p: (-(p.get("total_points") or 0), p.get("username") or "")
        )

        rank = 0
        previous_points = None
        for position, profile in enumerate(profiles, start=1):
            points = profile.get("total_points") or 0
            if points != previous_points:
                rank = position
                previous_points = points
            profile["rank"] = rank
        return profiles

    @staticmethod
    def fetch_leaderboard(
        db: Client,
        page: int = 0,
        page_size: int = constants.LEADERBOARD_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Fetch one page of the global leaderboard."""
        entries = [
            {
                "user_id": profile["id"],
                "username": create_safe_display_name(profile.get("username")),
                "avatar_url": profile.get("avatar_url"),
                "total_points": profile.get("total_points") or 0,
                "items_completed": profile.get("items_completed") or 0,
                "rank": profile["rank"],
            }
            for profile in SocialService._ranked_profiles(db)
        ]
        return paginate(entries, page, page_size)

    @staticmethod
    def fetch_user_rank(db: Client, user_id: str) -> Optional[int]:
        doc = cast(
            "DocumentSnapshot",
            db.collection(constants.PROFILES).document(user_id).get(),
        )
        if not doc.exists:
            raise NotFoundError("Profile not found.")
        return (doc.to_dict() or {}).get("global_rank")

    @staticmethod
    def recalculate_global_ranks(db: Client) -> int:
        """Rewrite every profile's global rank from its total points.

        Only changed ranks are written. Failures are logged and reported as
        zero updates so the calling operation is never blocked.
        """
        try:
            profiles = SocialService._ranked_profiles(db)
            batch = db.batch()
            updates = 0
            for profile in profiles:
                if profile.get("global_rank") == profile["rank"]:
                    continue
                ref = db.collection(constants.PROFILES).document(profile["id"])
                batch.update(ref, {"global_rank": profile["rank"]})
                updates += 1
                if updates % constants.FIRESTORE_BATCH_LIMIT == 0:
                    batch.commit()
                    batch = db.batch()
            if updates % constants.FIRESTORE_BATCH_LIMIT:
                batch.commit()
            return updates
        except Exception as e:
            current_app.logger.error(f"Error recalculating global ranks: {e}")
            return 0
