"""Admin routes for the application."""

from firebase_admin import firestore
from flask import current_app, jsonify, request, session

from bucketly.audit import log_audit_action
from bucketly.auth.decorators import login_required
from bucketly.badges.services import BadgeService
from bucketly.lists.services import ListService
from bucketly.notifications.services import NotificationService
from bucketly.social.services import SocialService
from bucketly.utils import api_response

from . import bp
from .forms import BadgeForm, BroadcastForm


def _form_errors(form):
    return jsonify({"status": "error", "errors": form.errors}), 400


def _icon_url(form):
    """Upload the submitted icon, if any, and return its URL."""
    icon = form.icon.data
    if not icon or not getattr(icon, "filename", None):
        return None
    return BadgeService.upload_badge_icon(icon.read(), icon.mimetype)


@bp.route("/badges")
@login_required(admin_required=True)
def badges():
    db = firestore.client()
    return jsonify(api_response(BadgeService.fetch_badges(db)))


@bp.route("/badges", methods=["POST"])
@login_required(admin_required=True)
def create_badge():
    """Create a badge from a multipart form with an optional icon."""
    form = BadgeForm()
    if not form.validate_on_submit():
        return _form_errors(form)

    db = firestore.client()
    badge = BadgeService.create_badge(
        db,
        form.name.data,
        {"type": form.criteria_type.data, "target": form.target.data},
        description=form.description.data or None,
        icon_url=_icon_url(form),
    )
    current_app.logger.info(f"Badge {badge['id']} created by {session['user_id']}")
    return jsonify(api_response(badge, "Badge created")), 201


@bp.route("/badges/<string:badge_id>", methods=["POST"])
@login_required(admin_required=True)
def update_badge(badge_id):
    form = BadgeForm()
    if not form.validate_on_submit():
        return _form_errors(form)

    updates = {
        "name": form.name.data,
        "description": form.description.data or None,
        "criteria": {"type": form.criteria_type.data, "target": form.target.data},
    }
    icon_url = _icon_url(form)
    if icon_url:
        updates["icon_url"] = icon_url

    db = firestore.client()
    badge = BadgeService.update_badge(db, badge_id, updates)
    return jsonify(api_response(badge, "Badge updated"))


@bp.route("/notifications", methods=["POST"])
@login_required(admin_required=True)
def broadcast():
    """Send a notification to every user."""
    form = BroadcastForm()
    if not form.validate_on_submit():
        return _form_errors(form)

    db = firestore.client()
    count = NotificationService.create_admin_notification(
        db,
        form.title.data,
        form.message.data,
        notification_type=form.notification_type.data,
        priority=form.priority.data,
    )
    log_audit_action(
        db,
        session["user_id"],
        "broadcast_notification",
        None,
        "notification",
        metadata={"recipients": count, "title": form.title.data},
    )
    return jsonify(api_response({"recipients": count}, "Notification sent"))


@bp.route("/lists", methods=["POST"])
@login_required(admin_required=True)
def create_public_list():
    """Create a list that is public unless is_public is explicitly false."""
    payload = request.get_json(silent=True) or {}
    db = firestore.client()
    bucket_list = ListService.create_list(
        db,
        session["user_id"],
        payload.get("name"),
        payload.get("category"),
        description=payload.get("description"),
        is_public=bool(payload.get("is_public", True)),
        items=payload.get("items") or [],
        is_admin=True,
    )
    return jsonify(api_response(bucket_list, "List created")), 201


@bp.route("/ranks/recalculate", methods=["POST"])
@login_required(admin_required=True)
def recalculate_ranks():
    db = firestore.client()
    updated = SocialService.recalculate_global_ranks(db)
    return jsonify(api_response({"updated": updated}))
