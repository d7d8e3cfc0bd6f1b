"""Service for badge evaluation and awarding."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from flask import current_app
from google.api_core.exceptions import AlreadyExists

from bucketly import constants
from bucketly.errors import NotFoundError, ValidationError, is_duplicate_error
from bucketly.notifications.services import NotificationService
from bucketly.storage import compress_image, upload_bytes
from bucketly.utils import doc_to_dict, sort_newest_first, utcnow

from .models import BadgeProgress, CriteriaType
from .progress import calculate_progress_map

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from bucketly.core.types import BadgeCriteria

BADGE_ICON_MAX_DIMENSION = 256
BADGE_ICON_MAX_BYTES = constants.MB


def _user_badge_id(user_id: str, badge_id: str) -> str:
    return f"{user_id}_{badge_id}"


def _validate_criteria(criteria: Any) -> BadgeCriteria:
    if not isinstance(criteria, dict):
        raise ValidationError("Badge criteria must be an object.")
    if CriteriaType.parse(criteria.get("type")) is None:
        raise ValidationError("Please select a valid badge criteria type.")
    target = criteria.get("target", criteria.get("threshold"))
    if isinstance(target, bool) or not isinstance(target, int) or target < 1:
        raise ValidationError("Badge target must be a positive whole number.")
    return {"type": criteria["type"], "target": target}


class BadgeService:
    """Service class for badge-related operations."""

    @staticmethod
    def fetch_badges(db: Client) -> list[dict[str, Any]]:
        """Fetch every badge definition, newest first."""
        badges = [doc_to_dict(doc) for doc in db.collection(constants.BADGES).stream()]
        return sort_newest_first(badges)

    @staticmethod
    def fetch_earned_badge_ids(db: Client, user_id: str) -> set[str]:
        query = db.collection(constants.USER_BADGES).where("user_id", "==", user_id)
        badge_ids = {(doc.to_dict() or {}).get("badge_id") for doc in query.stream()}
        return {badge_id for badge_id in badge_ids if badge_id}

    @staticmethod
    def fetch_user_badges(db: Client, user_id: str) -> list[dict[str, Any]]:
        """Fetch a user's earned badges with the badge details, newest first."""
        query = db.collection(constants.USER_BADGES).where("user_id", "==", user_id)
        earned = [doc_to_dict(doc) for doc in query.stream()]
        if not earned:
            return []

        badge_refs = [
            db.collection(constants.BADGES).document(row["badge_id"]) for row in earned
        ]
        badges = {
            doc.id: doc_to_dict(doc) for doc in db.get_all(badge_refs) if doc.exists
        }
        for row in earned:
            row["badge"] = badges.get(row["badge_id"])
        return sort_newest_first(earned, field="awarded_at")

    @staticmethod
    def create_badge(
        db: Client,
        name: str,
        criteria: dict[str, Any],
        description: Optional[str] = None,
        icon_url: Optional[str] = None,
    ) -> dict[str, Any]:
        if not name or not name.strip():
            raise ValidationError("Badge name is required.")
        data = {
            "name": name.strip(),
            "description": description,
            "icon_url": icon_url or "",
            "criteria": _validate_criteria(criteria),
            "created_at": utcnow(),
        }
        _, ref = db.collection(constants.BADGES).add(data)
        return {**data, "id": ref.id}

    @staticmethod
    def update_badge(
        db: Client, badge_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply a partial update to a badge definition."""
        ref = db.collection(constants.BADGES).document(badge_id)
        doc = cast("DocumentSnapshot", ref.get())
        if not doc.exists:
            raise NotFoundError("Badge not found.")

        allowed = {
            key: value
            for key, value in updates.items()
            if key in ("name", "description", "icon_url", "criteria")
        }
        if "criteria" in allowed:
            allowed["criteria"] = _validate_criteria(allowed["criteria"])
        if "name" in allowed and not (allowed["name"] or "").strip():
            raise ValidationError("Badge name is required.")
        if allowed:
            ref.update(allowed)
        return {**(doc.to_dict() or {}), **allowed, "id": badge_id}

    @staticmethod
    def upload_badge_icon(data: bytes, content_type: Optional[str]) -> str:
        """Normalize and upload a badge icon, returning its public URL."""
        if content_type not in constants.MEMORY_PHOTO_TYPES:
            raise ValidationError("Badge icon must be a JPEG, PNG, GIF or WebP image.")
        icon = compress_image(data, BADGE_ICON_MAX_DIMENSION, BADGE_ICON_MAX_BYTES)
        path = f"badges/badge-{int(utcnow().timestamp() * 1000)}.jpg"
        return upload_bytes(path, icon)

    @staticmethod
    def calculate_badge_progress(
        db: Client, user_id: str, profile: Optional[dict[str, Any]] = None
    ) -> dict[str, BadgeProgress]:
        """Compute progress towards every badge for a user.

        The profile is loaded when not supplied. An unknown user has no
        progress at all.
        """
        if profile is None:
            doc = cast(
                "DocumentSnapshot",
                db.collection(constants.PROFILES).document(user_id).get(),
            )
            if not doc.exists:
                current_app.logger.warning(
                    f"Badge progress requested for unknown profile {user_id}"
                )
                return {}
            profile = doc.to_dict() or {}

        badges = BadgeService.fetch_badges(db)
        earned = BadgeService.fetch_earned_badge_ids(db, user_id)
        return calculate_progress_map(badges, profile, earned)

    @staticmethod
    def award_badge(
        db: Client, user_id: str, badge_id: str
    ) -> Optional[dict[str, Any]]:
        """Insert an earned-badge record. Returns None if it already existed."""
        record = {"user_id": user_id, "badge_id": badge_id, "awarded_at": utcnow()}
        ref = db.collection(constants.USER_BADGES).document(
            _user_badge_id(user_id, badge_id)
        )
        try:
            ref.create(record)
        except AlreadyExists:
            return None
        return {**record, "id": ref.id}

    @staticmethod
    def check_and_award_badges(db: Client, user_id: str) -> list[str]:
        """Award every badge the user has reached but not yet earned.

        Each new award also creates an ``achievement_unlocked`` notification.
        Badges that turn out to be awarded already are skipped silently; any
        other insert failure is logged and the sweep moves on.
        """
        progress_map = BadgeService.calculate_badge_progress(db, user_id)
        newly_awarded: list[str] = []

        for badge_id, progress in progress_map.items():
            if progress.is_earned or not progress.is_complete:
                continue
            try:
                awarded = BadgeService.award_badge(db, user_id, badge_id)
            except Exception as e:
                if not is_duplicate_error(e):
                    current_app.logger.error(
                        f"Error awarding badge {badge_id} to {user_id}: {e}"
                    )
                continue
            if awarded is None:
                continue

            newly_awarded.append(badge_id)
            NotificationService.create_notification(
                db,
                user_id,
                "New Badge Earned!",
                "You've unlocked a new achievement badge!",
                notification_type=constants.EVENT_ACHIEVEMENT_UNLOCKED,
                metadata={"badge_id": badge_id},
            )

        return newly_awarded
