"""Routes for the auth blueprint."""

from firebase_admin import auth, firestore
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from bucketly import constants
from bucketly.errors import DuplicateResourceError, NotFoundError, ValidationError
from bucketly.user.services import UserService
from bucketly.utils import EmailError, send_email

from . import bp
from .forms import RegisterForm
from .utils import is_admin_email


@bp.route("/register", methods=["POST"])
def register():
    """Create the Firebase Auth user and an empty profile."""
    form = RegisterForm()
    if not form.validate_on_submit():
        return jsonify({"status": "error", "errors": form.errors}), 400

    db = firestore.client()
    username = form.username.data.strip()
    email = form.email.data.strip().lower()

    if not UserService.check_username_availability(db, username):
        raise DuplicateResourceError("Username is already taken")

    # EmailAlreadyExistsError is mapped to a conflict toast by the error handlers.
    user_record = auth.create_user(
        email=email, password=form.password.data, email_verified=False
    )
    db.collection(constants.PROFILES).document(user_record.uid).set(
        UserService.new_profile(username, email)
    )

    try:
        verification_link = auth.generate_email_verification_link(email)
        send_email(
            to=email,
            subject="Verify Your Email",
            template="email/verify_email.html",
            user={"username": username},
            verification_link=verification_link,
        )
    except EmailError as e:
        current_app.logger.error(f"Error sending verification email to {email}: {e}")

    current_app.logger.info(f"Registered user {user_record.uid}")
    return jsonify({"status": "success", "user_id": user_record.uid}), 201


@bp.route("/session_login", methods=["POST"])
def session_login():
    """Exchange a Firebase ID token for a server-side session.

    Called from the client after a successful Firebase sign-in.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        raise ValidationError("Missing ID token.")

    decoded_token = auth.verify_id_token(id_token)
    uid = decoded_token["uid"]
    db = firestore.client()
    profile = db.collection(constants.PROFILES).document(uid).get()
    if not profile.exists:
        raise NotFoundError("Profile not found.")

    email = decoded_token.get("email") or (profile.to_dict() or {}).get("email")
    session["user_id"] = uid
    session["is_admin"] = is_admin_email(email)
    return jsonify({"status": "success", "is_admin": session["is_admin"]})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session. Firebase sign-out happens on the client."""
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/csrf-token")
def csrf_token():
    """Token the client sends back in the X-CSRFToken header on writes."""
    return jsonify({"csrf_token": generate_csrf()})
