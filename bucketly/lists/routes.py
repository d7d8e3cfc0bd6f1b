"""Routes for the lists blueprint."""

from firebase_admin import firestore
from flask import jsonify, request, session

from bucketly.auth.decorators import login_required
from bucketly.core import optimistic
from bucketly.errors import NotFoundError, ValidationError
from bucketly.utils import api_response

from . import bp
from .services import ListService


def _json():
    return request.get_json(silent=True) or {}


def _page():
    return request.args.get("page", 0, type=int)


@bp.route("/mine")
@login_required
def my_lists():
    """The current user's lists, including the ones they follow."""
    db = firestore.client()
    only_owned = request.args.get("only_owned", "false").lower() in ("true", "1")
    lists = ListService.fetch_user_lists(db, session["user_id"], only_owned=only_owned)
    return jsonify(api_response(lists))


@bp.route("", methods=["POST"])
@login_required
def create_list():
    payload = _json()
    db = firestore.client()
    bucket_list = ListService.create_list(
        db,
        session["user_id"],
        payload.get("name"),
        payload.get("category"),
        description=payload.get("description"),
        is_public=bool(payload.get("is_public", False)),
        items=payload.get("items") or [],
        is_admin=bool(session.get("is_admin")),
    )
    return jsonify(api_response(bucket_list, "List created")), 201


@bp.route("/public")
def public_lists():
    db = firestore.client()
    result = ListService.fetch_public_lists(
        db,
        category=request.args.get("category") or None,
        user_id=session.get("user_id"),
        page=_page(),
    )
    return jsonify(api_response(result))


@bp.route("/search")
def search():
    db = firestore.client()
    results = ListService.search_lists(
        db,
        request.args.get("q", ""),
        category=request.args.get("category") or None,
        user_id=session.get("user_id"),
    )
    return jsonify(api_response(results))


@bp.route("/trending")
def trending():
    db = firestore.client()
    lists = ListService.fetch_trending_lists(db, user_id=session.get("user_id"))
    return jsonify(api_response(lists))


@bp.route("/catalog")
def catalog():
    """Browse the curated item catalogue."""
    db = firestore.client()
    result = ListService.fetch_global_items(
        db,
        category=request.args.get("category") or None,
        query=request.args.get("q"),
        page=_page(),
    )
    return jsonify(api_response(result))


@bp.route("/<string:list_id>")
def view_list(list_id):
    db = firestore.client()
    bucket_list = ListService.fetch_list(db, list_id, user_id=session.get("user_id"))
    return jsonify(api_response(bucket_list))


@bp.route("/<string:list_id>", methods=["PATCH"])
@login_required
def update_list(list_id):
    db = firestore.client()
    bucket_list = ListService.update_list(
        db,
        session["user_id"],
        list_id,
        _json(),
        is_admin=bool(session.get("is_admin")),
    )
    return jsonify(api_response(bucket_list, "List updated"))


@bp.route("/<string:list_id>", methods=["DELETE"])
@login_required
def delete_list(list_id):
    db = firestore.client()
    ListService.delete_list(db, session["user_id"], list_id)
    return jsonify(api_response(message="List deleted"))


@bp.route("/<string:list_id>/clone", methods=["POST"])
@login_required
def clone_list(list_id):
    db = firestore.client()
    bucket_list = ListService.clone_list(db, session["user_id"], list_id)
    return jsonify(api_response(bucket_list, "List added")), 201


@bp.route("/<string:list_id>/follow", methods=["POST"])
@login_required
def follow_list(list_id):
    db = firestore.client()
    result = ListService.follow_list(db, session["user_id"], list_id)
    message = (
        "You are already following this list"
        if result["already_following"]
        else "List followed"
    )
    return jsonify(api_response(result, message))


@bp.route("/<string:list_id>/follow", methods=["DELETE"])
@login_required
def unfollow_list(list_id):
    db = firestore.client()
    removed = ListService.unfollow_list(db, session["user_id"], list_id)
    return jsonify(api_response({"unfollowed": removed}))


@bp.route("/<string:list_id>/is-following")
@login_required
def is_following(list_id):
    db = firestore.client()
    following = ListService.is_following_list(db, session["user_id"], list_id)
    return jsonify(api_response({"following": following}))


@bp.route("/<string:list_id>/items", methods=["POST"])
@login_required
def add_item(list_id):
    db = firestore.client()
    item = ListService.add_item(db, session["user_id"], list_id, _json())
    return jsonify(api_response(item, "Item added")), 201


@bp.route("/items/<string:item_id>", methods=["PATCH"])
@login_required
def update_item(item_id):
    db = firestore.client()
    item = ListService.update_item(db, session["user_id"], item_id, _json())
    return jsonify(api_response(item, "Item updated"))


@bp.route("/items/<string:item_id>", methods=["DELETE"])
@login_required
def delete_item(item_id):
    db = firestore.client()
    ListService.delete_item(db, session["user_id"], item_id)
    return jsonify(api_response(message="Item deleted"))


def _completed_flag():
    completed = _json().get("completed", True)
    if not isinstance(completed, bool):
        raise ValidationError("completed must be true or false.")
    return completed


@bp.route("/items/<string:item_id>/complete", methods=["POST"])
@login_required
def toggle_completion(item_id):
    """Mark an item complete, or incomplete with {"completed": false}."""
    completed = _completed_flag()
    db = firestore.client()
    item = ListService.toggle_item_completion(
        db, session["user_id"], item_id, completed
    )
    return jsonify(api_response(item))


@bp.route("/<string:list_id>/items/<string:item_id>/complete", methods=["POST"])
@login_required
def toggle_completion_in_list(list_id, item_id):
    """Toggle an item and answer with the list's items as they now stand."""
    completed = _completed_flag()
    db = firestore.client()
    bucket_list = ListService.fetch_list(db, list_id, session["user_id"])
    if item_id not in {item["id"] for item in bucket_list["items"]}:
        raise NotFoundError("Item not found.")

    items = optimistic.LocalState(bucket_list["items"])
    items.optimistic(
        lambda current: optimistic.toggle_completion(current, item_id, completed),
        lambda: ListService.toggle_item_completion(
            db, session["user_id"], item_id, completed
        ),
    )
    return jsonify(api_response(items.value))
