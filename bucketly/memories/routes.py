"""Routes for the memories blueprint."""

from firebase_admin import firestore
from flask import jsonify, request, session

from bucketly.auth.decorators import login_required
from bucketly.errors import ValidationError
from bucketly.utils import api_response

from . import bp
from .services import MemoryService


@bp.route("/item/<string:item_id>")
def item_memories(item_id):
    """List the memories on an item visible to the current viewer."""
    db = firestore.client()
    memories = MemoryService.fetch_memories_for_item(
        db, item_id, viewer_id=session.get("user_id")
    )
    return jsonify(api_response(memories))


@bp.route("/item/<string:item_id>/mine")
@login_required
def my_item_memory(item_id):
    db = firestore.client()
    memory = MemoryService.fetch_user_memory_for_item(db, session["user_id"], item_id)
    return jsonify(api_response(memory))


@bp.route("/user/<string:user_id>")
def user_memories(user_id):
    db = firestore.client()
    memories = MemoryService.fetch_memories_for_user(
        db, user_id, viewer_id=session.get("user_id")
    )
    return jsonify(api_response(memories))


@bp.route("", methods=["POST"])
@login_required
def create_memory():
    """Create or replace the current user's memory for an item."""
    payload = request.get_json(silent=True) or {}
    if not payload.get("item_id"):
        raise ValidationError("An item is required.")
    db = firestore.client()
    memory = MemoryService.create_memory(
        db,
        session["user_id"],
        payload["item_id"],
        payload.get("reflection"),
        payload.get("photos"),
        bool(payload.get("is_public", False)),
    )
    return jsonify(api_response(memory, "Memory saved")), 201


@bp.route("/<string:memory_id>", methods=["PATCH"])
@login_required
def update_memory(memory_id):
    db = firestore.client()
    memory = MemoryService.update_memory(
        db, session["user_id"], memory_id, request.get_json(silent=True) or {}
    )
    return jsonify(api_response(memory, "Memory updated"))


@bp.route("/<string:memory_id>", methods=["DELETE"])
@login_required
def delete_memory(memory_id):
    db = firestore.client()
    MemoryService.delete_memory(db, session["user_id"], memory_id)
    return jsonify(api_response(message="Memory deleted"))


@bp.route("/photos", methods=["POST"])
@login_required
def upload_photo():
    """Upload one memory photo and return its public URL."""
    photo = request.files.get("photo")
    if photo is None or not photo.filename:
        raise ValidationError("Please choose a photo to upload.")
    url = MemoryService.upload_memory_photo(session["user_id"], photo)
    return jsonify(api_response({"url": url}, "Photo uploaded")), 201


@bp.route("/photos", methods=["DELETE"])
@login_required
def delete_photo():
    url = (request.get_json(silent=True) or {}).get("url")
    if not url:
        raise ValidationError("Invalid photo URL")
    MemoryService.delete_memory_photo(url, user_id=session["user_id"])
    return jsonify(api_response(message="Photo deleted"))
