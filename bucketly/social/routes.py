"""Routes for the social blueprint."""

from firebase_admin import firestore
from flask import jsonify, request, session

from bucketly import constants
from bucketly.auth.decorators import login_required
from bucketly.utils import api_response

from . import bp
from .services import SocialService


def _page():
    return request.args.get("page", 0, type=int)


@bp.route("/timeline/<string:user_id>")
def timeline(user_id):
    """A user's timeline. Other viewers only see public events."""
    db = firestore.client()
    result = SocialService.fetch_user_timeline(
        db,
        user_id,
        page=_page(),
        page_size=request.args.get(
            "page_size", constants.TIMELINE_PAGE_SIZE, type=int
        ),
        public_only=session.get("user_id") != user_id,
    )
    return jsonify(api_response(result))


@bp.route("/feed")
@login_required
def feed():
    db = firestore.client()
    return jsonify(
        api_response(
            SocialService.fetch_social_feed(db, session["user_id"], page=_page())
        )
    )


@bp.route("/followed-users")
@login_required
def followed_users():
    db = firestore.client()
    return jsonify(
        api_response(SocialService.fetch_followed_users(db, session["user_id"]))
    )


@bp.route("/leaderboard")
def leaderboard():
    db = firestore.client()
    return jsonify(api_response(SocialService.fetch_leaderboard(db, page=_page())))


@bp.route("/rank/<string:user_id>")
def rank(user_id):
    db = firestore.client()
    return jsonify(
        api_response({"global_rank": SocialService.fetch_user_rank(db, user_id)})
    )
