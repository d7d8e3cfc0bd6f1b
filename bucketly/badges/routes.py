"""Routes for the badges blueprint."""

from firebase_admin import firestore
from flask import jsonify, session

from bucketly.auth.decorators import login_required
from bucketly.utils import api_response

from . import bp
from .services import BadgeService


@bp.route("")
def list_badges():
    """All badge definitions, with the viewer's progress when logged in."""
    db = firestore.client()
    badges = BadgeService.fetch_badges(db)
    user_id = session.get("user_id")
    if user_id:
        progress = BadgeService.calculate_badge_progress(db, user_id)
        for badge in badges:
            badge_progress = progress.get(badge["id"])
            badge["progress"] = badge_progress.to_dict() if badge_progress else None
    return jsonify(api_response(badges))


@bp.route("/earned")
@login_required
def earned_badges():
    db = firestore.client()
    return jsonify(api_response(BadgeService.fetch_user_badges(db, session["user_id"])))


@bp.route("/check", methods=["POST"])
@login_required
def check_badges():
    """Award any badges the current user has reached."""
    db = firestore.client()
    awarded = BadgeService.check_and_award_badges(db, session["user_id"])
    return jsonify(api_response({"awarded": awarded}))
