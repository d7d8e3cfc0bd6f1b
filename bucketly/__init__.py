"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from . import constants
from .extensions import csrf, mail

DEFAULT_PHOTO_DOMAINS = "storage.googleapis.com,firebasestorage.googleapis.com"


def _env(name, default=None):
    """Read an environment variable, treating empty values as unset."""
    return os.environ.get(name) or default


def _strip_quotes(value):
    if not value:
        return value
    return value.strip().strip("'\"")


def _split_list(value):
    return [part.strip().lower() for part in (value or "").split(",") if part.strip()]


def _firebase_credentials(app):
    """Find credentials: env JSON, then a local file, then the default account."""
    cred = None
    project_id = None

    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )
    return cred, project_id


def _init_firebase(app):
    cred, project_id = _firebase_credentials(app)
    if not cred or firebase_admin._apps:
        return
    storage_bucket = app.config.get("FIREBASE_STORAGE_BUCKET")
    if not storage_bucket and project_id:
        storage_bucket = f"{project_id}.firebasestorage.app"

    firebase_options = {"storageBucket": storage_bucket}
    if project_id:
        firebase_options["projectId"] = project_id
    try:
        firebase_admin.initialize_app(cred, firebase_options)
    except ValueError:
        app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)

    mail_password = _strip_quotes(_env("MAIL_PASSWORD"))
    app.config.from_mapping(
        SECRET_KEY=_env("SECRET_KEY", "dev"),
        MAIL_SERVER=_env("MAIL_SERVER", "smtp.gmail.com"),
        MAIL_PORT=int(_env("MAIL_PORT", 587)),
        MAIL_USE_TLS=_env("MAIL_USE_TLS", "true").lower() in ["true", "1", "t"],
        MAIL_USE_SSL=_env("MAIL_USE_SSL", "false").lower() in ["true", "1", "t"],
        MAIL_USERNAME=_strip_quotes(_env("MAIL_USERNAME")),
        # App passwords are often pasted with the spaces they are displayed with.
        MAIL_PASSWORD=mail_password.replace(" ", "") if mail_password else None,
        MAIL_DEFAULT_SENDER=_env("MAIL_DEFAULT_SENDER", "noreply@bucketly.app"),
        ADMIN_EMAILS=_split_list(_env("ADMIN_EMAILS")),
        PHOTO_ALLOWED_DOMAINS=_split_list(
            _env("PHOTO_ALLOWED_DOMAINS", DEFAULT_PHOTO_DOMAINS)
        ),
        FIREBASE_STORAGE_BUCKET=_env("FIREBASE_STORAGE_BUCKET"),
        MAX_CONTENT_LENGTH=constants.MEMORY_PHOTO_MAX_SIZE + constants.MB,
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Initialize extensions
    mail.init_app(app)
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import lists as lists_bp

    app.register_blueprint(lists_bp.bp)

    from . import memories as memories_bp

    app.register_blueprint(memories_bp.bp)

    from . import user as user_bp

    app.register_blueprint(user_bp.bp)

    from . import social as social_bp

    app.register_blueprint(social_bp.bp)

    from . import notifications as notifications_bp

    app.register_blueprint(notifications_bp.bp)

    from . import badges as badges_bp

    app.register_blueprint(badges_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the profile into g.user."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            db = firestore.client()
            profile = db.collection(constants.PROFILES).document(user_id).get()
            if profile.exists:
                g.user = profile.to_dict()
                g.user["uid"] = user_id
            else:
                session.clear()
                current_app.logger.warning(
                    f"User {user_id} in session but not found in Firestore."
                )
        except Exception as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
