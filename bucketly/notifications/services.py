"""Service for user notifications and admin broadcasts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from bucketly import constants
from bucketly.core.realtime import ADDED, MODIFIED, Subscription
from bucketly.core.sanitization import sanitize_metadata
from bucketly.errors import ForbiddenError, NotFoundError, ValidationError
from bucketly.utils import sort_newest_first, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def to_notification(notification_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Shape a stored notification for the client."""
    return {
        "id": notification_id,
        "title": data.get("title"),
        "message": data.get("message"),
        "timestamp": data.get("created_at"),
        "type": data.get("type", "info"),
        "read": data.get("read", False),
        "priority": data.get("priority", "medium"),
        "metadata": data.get("metadata") or {},
    }


class NotificationService:
    """Service class for notification-related operations."""

    @staticmethod
    def _user_query(db: Client, user_id: str) -> Any:
        return db.collection(constants.NOTIFICATIONS).where(
            filter=firestore.FieldFilter("user_id", "==", user_id)
        )

    @staticmethod
    def _owned_ref(
        db: Client, notification_id: str, user_id: str
    ) -> DocumentReference:
        ref = db.collection(constants.NOTIFICATIONS).document(notification_id)
        doc = cast("DocumentSnapshot", ref.get())
        if not doc.exists:
            raise NotFoundError("Notification not found.")
        if (doc.to_dict() or {}).get("user_id") != user_id:
            raise ForbiddenError("You can only manage your own notifications.")
        return ref

    @staticmethod
    def create_notification(
        db: Client,
        user_id: str,
        title: str,
        message: str,
        notification_type: str = "info",
        priority: str = "medium",
        metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        """Insert a notification for a single user and return its id."""
        now = utcnow()
        _, ref = db.collection(constants.NOTIFICATIONS).add(
            {
                "user_id": user_id,
                "type": notification_type,
                "title": title,
                "message": message,
                "priority": priority,
                "metadata": sanitize_metadata(metadata or {}),
                "read": False,
                "created_at": now,
                "updated_at": now,
            }
        )
        return ref.id

    @staticmethod
    def fetch_user_notifications(
        db: Client, user_id: str, limit: int = constants.NOTIFICATIONS_LIMIT
    ) -> list[dict[str, Any]]:
        """Fetch a user's notifications, newest first."""
        rows = []
        for doc in NotificationService._user_query(db, user_id).stream():
            data = doc.to_dict() or {}
            data["id"] = doc.id
            rows.append(data)
        return [
            to_notification(row["id"], row) for row in sort_newest_first(rows)[:limit]
        ]

    @staticmethod
    def mark_notification_as_read(
        db: Client, notification_id: str, user_id: str
    ) -> None:
        ref = NotificationService._owned_ref(db, notification_id, user_id)
        ref.update({"read": True, "updated_at": utcnow()})

    @staticmethod
    def mark_all_notifications_as_read(db: Client, user_id: str) -> int:
        """Mark every unread notification of a user as read."""
        unread = (
            NotificationService._user_query(db, user_id)
            .where(filter=firestore.FieldFilter("read", "==", False))
            .stream()
        )
        now = utcnow()
        batch = db.batch()
        count = 0
        for doc in unread:
            batch.update(doc.reference, {"read": True, "updated_at": now})
            count += 1
            if count % constants.FIRESTORE_BATCH_LIMIT == 0:
                batch.commit()
                batch = db.batch()
        if count % constants.FIRESTORE_BATCH_LIMIT:
            batch.commit()
        return count

    @staticmethod
    def delete_notification(db: Client, notification_id: str, user_id: str) -> None:
        NotificationService._owned_ref(db, notification_id, user_id).delete()

    @staticmethod
    def delete_all_notifications(db: Client, user_id: str) -> int:
        count = 0
        for doc in NotificationService._user_query(db, user_id).stream():
            doc.reference.delete()
            count += 1
        return count

    @staticmethod
    def create_admin_notification(
        db: Client,
        title: str,
        message: str,
        notification_type: str = "info",
        priority: str = "medium",
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Broadcast a notification to every profile. Returns the recipient count."""
        if not title or not title.strip() or not message or not message.strip():
            raise ValidationError("Title and message are required.")
        if notification_type not in constants.NOTIFICATION_TYPES:
            raise ValidationError("Invalid notification type.")
        if priority not in constants.NOTIFICATION_PRIORITIES:
            raise ValidationError("Invalid notification priority.")

        payload = {
            "type": notification_type,
            "title": title.strip(),
            "message": message.strip(),
            "priority": priority,
            "metadata": {
                **sanitize_metadata(metadata or {}),
                "is_admin_notification": True,
            },
            "read": False,
        }
        notifications = db.collection(constants.NOTIFICATIONS)
        now = utcnow()
        batch = db.batch()
        count = 0
        for profile in db.collection(constants.PROFILES).stream():
            batch.set(
                notifications.document(),
                {
                    **payload,
                    "user_id": profile.id,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            count += 1
            if count % constants.FIRESTORE_BATCH_LIMIT == 0:
                batch.commit()
                batch = db.batch()
        if count % constants.FIRESTORE_BATCH_LIMIT:
            batch.commit()
        return count

    @staticmethod
    def subscribe_to_notifications(db: Client, user_id: str) -> Subscription:
        """Open a channel of new and updated notifications for a user."""
        return Subscription(
            NotificationService._user_query(db, user_id),
            kinds=(ADDED, MODIFIED),
            transform=to_notification,
        )
