"""Routes for the notifications blueprint."""

from firebase_admin import firestore
from flask import Response, jsonify, request, session, stream_with_context

from bucketly import constants
from bucketly.auth.decorators import login_required
from bucketly.core.realtime import event_stream
from bucketly.utils import api_response

from . import bp
from .services import NotificationService


@bp.route("")
@login_required
def list_notifications():
    db = firestore.client()
    notifications = NotificationService.fetch_user_notifications(
        db,
        session["user_id"],
        limit=request.args.get("limit", constants.NOTIFICATIONS_LIMIT, type=int),
    )
    unread = sum(1 for notification in notifications if not notification["read"])
    return jsonify(api_response({"notifications": notifications, "unread": unread}))


@bp.route("/<string:notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id):
    db = firestore.client()
    NotificationService.mark_notification_as_read(
        db, notification_id, session["user_id"]
    )
    return jsonify(api_response(message="Notification marked as read"))


@bp.route("/read-all", methods=["POST"])
@login_required
def mark_all_read():
    db = firestore.client()
    count = NotificationService.mark_all_notifications_as_read(db, session["user_id"])
    return jsonify(api_response({"updated": count}))


@bp.route("/<string:notification_id>", methods=["DELETE"])
@login_required
def delete(notification_id):
    db = firestore.client()
    NotificationService.delete_notification(db, notification_id, session["user_id"])
    return jsonify(api_response(message="Notification deleted"))


@bp.route("", methods=["DELETE"])
@login_required
def delete_all():
    db = firestore.client()
    count = NotificationService.delete_all_notifications(db, session["user_id"])
    return jsonify(api_response({"deleted": count}))


@bp.route("/stream")
@login_required
def stream():
    """Server-sent events for new and updated notifications."""
    db = firestore.client()
    subscription = NotificationService.subscribe_to_notifications(
        db, session["user_id"]
    )
    return Response(
        stream_with_context(event_stream(subscription)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
