"""Initialize the Flask app and its extensions."""

import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .extensions import csrf, mail


def _env_int(name, default):
    return int(os.environ.get(name) or default)


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        MAIL_SERVER=os.environ.get("MAIL_SERVER") or "smtp.gmail.com",
        MAIL_PORT=_env_int("MAIL_PORT", 587),
        MAIL_USE_TLS=(os.environ.get("MAIL_USE_TLS") or "true").lower()
        in ["true", "1", "t"],
        MAIL_USE_SSL=(os.environ.get("MAIL_USE_SSL") or "false").lower()
        in ["true", "1", "t"],
        MAIL_USERNAME=os.environ.get("MAIL_USERNAME"),
        MAIL_PASSWORD=os.environ.get("MAIL_PASSWORD"),
        MAIL_DEFAULT_SENDER=os.environ.get("MAIL_DEFAULT_SENDER")
        or "noreply@korban.local",
        ADMIN_CONTACT_PHONE=os.environ.get("ADMIN_CONTACT_PHONE"),
        ADMIN_CONTACT_EMAIL=os.environ.get("ADMIN_CONTACT_EMAIL"),
        # Calendar dates (e.g. a payment's paid date) are taken in this zone
        TIMEZONE=os.environ.get("TIMEZONE") or "Asia/Kuala_Lumpur",
        # Business constants of the collection programme
        GROUP_CAPACITY=_env_int("GROUP_CAPACITY", 7),
        MONTHLY_AMOUNT=_env_int("MONTHLY_AMOUNT", 100),
        # Receipt processing
        RECEIPT_MAX_WIDTH=_env_int("RECEIPT_MAX_WIDTH", 1200),
        RECEIPT_QUALITY=_env_int("RECEIPT_QUALITY", 80),
        MAX_CONTENT_LENGTH=12 * 1024 * 1024,
        # Storage housekeeping
        BACKUP_BATCH_SIZE=_env_int("BACKUP_BATCH_SIZE", 10),
        REJECTED_RECEIPT_MAX_AGE_DAYS=_env_int("REJECTED_RECEIPT_MAX_AGE_DAYS", 30),
        STORAGE_QUOTA_BYTES=_env_int("STORAGE_QUOTA_BYTES", 5 * 1024 * 1024 * 1024),
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

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import participant as participant_bp

    app.register_blueprint(participant_bp.bp)

    from . import payment as payment_bp

    app.register_blueprint(payment_bp.bp)

    from . import receipt as receipt_bp

    app.register_blueprint(receipt_bp.bp)

    from . import change_request as change_request_bp

    app.register_blueprint(change_request_bp.bp)

    from . import diagnostics as diagnostics_bp

    app.register_blueprint(diagnostics_bp.bp)

    from . import storage as storage_bp

    app.register_blueprint(storage_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """Load the signed-in user's role record into ``g.user``."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            db = firestore.client()
            role_doc = db.collection("userRoles").document(user_id).get()
            if role_doc.exists:
                g.user = role_doc.to_dict()
                g.user["uid"] = user_id
            else:
                session.clear()
                current_app.logger.warning(
                    f"User {user_id} in session but has no role in Firestore."
                )
        except Exception as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from env, file or default credentials."""
    import json

    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    project_id = json.load(f).get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            storage_bucket = os.environ.get("FIREBASE_STORAGE_BUCKET")
            if not storage_bucket and project_id:
                storage_bucket = f"{project_id}.firebasestorage.app"

            firebase_options = {"storageBucket": storage_bucket}
            if project_id:
                firebase_options["projectId"] = project_id

            firebase_admin.initialize_app(cred, firebase_options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")
