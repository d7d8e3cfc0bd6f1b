"""Routes for the user blueprint."""

import json

from firebase_admin import firestore
from flask import Response, jsonify, request, session, stream_with_context

from bucketly.auth.decorators import login_required
from bucketly.badges.services import BadgeService
from bucketly.core.realtime import event_stream
from bucketly.errors import ValidationError
from bucketly.utils import api_response, utcnow

from . import bp
from .services import UserService

PUBLIC_PROFILE_FIELDS = (
    "id",
    "username",
    "avatar_url",
    "bio",
    "is_private",
    "items_completed",
    "lists_created",
    "lists_following",
    "total_points",
    "global_rank",
    "followers_count",
    "following_count",
    "twitter_url",
    "instagram_url",
    "linkedin_url",
    "github_url",
    "website_url",
    "created_at",
)
PRIVATE_PROFILE_FIELDS = ("id", "username", "avatar_url", "is_private")


def _visible_profile(profile):
    """Trim a profile to what someone other than its owner may see."""
    if profile.get("id") == session.get("user_id"):
        return profile
    fields = (
        PRIVATE_PROFILE_FIELDS if profile.get("is_private") else PUBLIC_PROFILE_FIELDS
    )
    return {key: profile.get(key) for key in fields}


@bp.route("/me")
@login_required
def me():
    db = firestore.client()
    return jsonify(api_response(UserService.fetch_user_profile(db, session["user_id"])))


@bp.route("/me", methods=["PATCH"])
@login_required
def update_profile():
    """Update the current user's profile fields."""
    db = firestore.client()
    profile = UserService.update_user_profile(
        db, session["user_id"], request.get_json(silent=True) or {}
    )
    return jsonify(api_response(profile, "Profile updated"))


@bp.route("/me/avatar", methods=["POST"])
@login_required
def upload_avatar():
    avatar = request.files.get("avatar")
    if avatar is None or not avatar.filename:
        raise ValidationError("Please choose an image to upload.")
    db = firestore.client()
    url = UserService.upload_profile_avatar(db, session["user_id"], avatar)
    return jsonify(api_response({"avatar_url": url}, "Avatar updated"))


@bp.route("/me/stream")
@login_required
def profile_stream():
    """Server-sent events for changes to the current user's profile."""
    db = firestore.client()
    subscription = UserService.subscribe_to_profile_updates(db, session["user_id"])
    return Response(
        stream_with_context(event_stream(subscription)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@bp.route("/me/export")
@login_required
def export_data():
    """Download everything stored about the current user as JSON."""
    db = firestore.client()
    export = UserService.export_user_data(db, session["user_id"])
    filename = f"bucketly-export-{session['user_id']}-{int(utcnow().timestamp())}.json"
    return Response(
        json.dumps(export, indent=2),
        mimetype="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Content-Type-Options": "nosniff",
        },
    )


@bp.route("/me/badge-progress")
@login_required
def badge_progress():
    db = firestore.client()
    progress = BadgeService.calculate_badge_progress(db, session["user_id"])
    return jsonify(
        api_response({badge_id: p.to_dict() for badge_id, p in progress.items()})
    )


@bp.route("/check-username")
def check_username():
    username = (request.args.get("username") or "").strip()
    if not username:
        raise ValidationError("Username is required")
    db = firestore.client()
    available = UserService.check_username_availability(
        db, username, exclude_user_id=session.get("user_id")
    )
    return jsonify(api_response({"available": available}))


@bp.route("/by-username/<string:username>")
def profile_by_username(username):
    db = firestore.client()
    profile = UserService.fetch_profile_by_username(db, username)
    return jsonify(api_response(_visible_profile(profile)))


@bp.route("/<string:user_id>")
def view_profile(user_id):
    """View another user's profile."""
    db = firestore.client()
    profile = UserService.fetch_user_profile(db, user_id)
    return jsonify(api_response(_visible_profile(profile)))


@bp.route("/<string:user_id>/badges")
def user_badges(user_id):
    db = firestore.client()
    return jsonify(api_response(BadgeService.fetch_user_badges(db, user_id)))


@bp.route("/<string:user_id>/follow", methods=["POST"])
@login_required
def follow(user_id):
    db = firestore.client()
    created = UserService.follow_user(db, session["user_id"], user_id)
    message = "Now following" if created else "Already following"
    return jsonify(api_response({"following": True}, message))


@bp.route("/<string:user_id>/follow", methods=["DELETE"])
@login_required
def unfollow(user_id):
    db = firestore.client()
    UserService.unfollow_user(db, session["user_id"], user_id)
    return jsonify(api_response({"following": False}, "Unfollowed"))


@bp.route("/<string:user_id>/is-following")
@login_required
def is_following(user_id):
    db = firestore.client()
    following = UserService.is_following_user(db, session["user_id"], user_id)
    return jsonify(api_response({"following": following}))


@bp.route("/<string:user_id>/followers")
def followers(user_id):
    db = firestore.client()
    return jsonify(api_response(UserService.get_user_followers(db, user_id)))


@bp.route("/<string:user_id>/following")
def following(user_id):
    db = firestore.client()
    return jsonify(api_response(UserService.get_user_following(db, user_id)))


@bp.route("/<string:user_id>/follow-counts")
def follow_counts(user_id):
    db = firestore.client()
    return jsonify(api_response(UserService.get_user_follower_counts(db, user_id)))
