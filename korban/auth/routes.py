"""Authentication routes for the application.

Sign-in itself happens client-side with the Firebase SDK; the client posts
the resulting ID token here to open a server-side session.
"""

from firebase_admin import auth, firestore
from flask import current_app, g, jsonify, request, session

from korban.constants import USER_ROLES
from korban.errors import DuplicateResourceError, ValidationError
from korban.utils import form_errors

from . import bp
from .decorators import login_required
from .forms import AdminAccountForm, RegisterForm


@bp.route("/register", methods=["POST"])
def register():
    """Create a participant account in Firebase Auth and its role record."""
    form = RegisterForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))

    db = firestore.client()
    try:
        user_record = auth.create_user(
            email=form.email.data,
            password=form.password.data,
            display_name=form.display_name.data,
        )
    except auth.EmailAlreadyExistsError as e:
        raise DuplicateResourceError("Email address is already registered.") from e

    role = {
        "email": form.email.data,
        "role": "participant",
        "displayName": form.display_name.data,
        "createdAt": firestore.SERVER_TIMESTAMP,
    }
    if form.participant_id.data:
        role["participantId"] = form.participant_id.data
    db.collection(USER_ROLES).document(user_record.uid).set(role)
    current_app.logger.info(f"Registered participant account {user_record.uid}")
    return jsonify({"status": "success", "uid": user_record.uid}), 201


@bp.route("/session_login", methods=["POST"])
def session_login():
    """Verify a Firebase ID token and create a server-side session."""
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    if not id_token:
        raise ValidationError("idToken is required.")

    try:
        decoded_token = auth.verify_id_token(id_token)
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        return jsonify({"status": "error", "message": "Invalid token."}), 401

    uid = decoded_token["uid"]
    db = firestore.client()
    role_doc = db.collection(USER_ROLES).document(uid).get()
    if not role_doc.exists:
        return (
            jsonify({"status": "error", "message": "No role assigned to this user."}),
            404,
        )

    role = role_doc.to_dict()
    session.clear()
    session["user_id"] = uid
    session["is_admin"] = role.get("role") == "admin"
    if role.get("participantId"):
        session["participant_id"] = role["participantId"]
    return jsonify({"status": "success", "role": role.get("role")})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session."""
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/me")
@login_required
def me():
    """Return the signed-in user's role record."""
    return jsonify(g.user)


@bp.route("/admins", methods=["GET"])
@login_required(admin_required=True)
def list_admins():
    """List admin accounts."""
    db = firestore.client()
    admins = (
        db.collection(USER_ROLES)
        .where(filter=firestore.FieldFilter("role", "==", "admin"))
        .stream()
    )
    return jsonify([{**doc.to_dict(), "id": doc.id} for doc in admins])


@bp.route("/admins", methods=["POST"])
@login_required(admin_required=True)
def create_admin():
    """Create a new admin account."""
    form = AdminAccountForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))

    try:
        user_record = auth.create_user(
            email=form.email.data,
            password=form.password.data,
            display_name=form.display_name.data,
        )
    except auth.EmailAlreadyExistsError as e:
        raise DuplicateResourceError(
            "Email is already used by another account."
        ) from e

    db = firestore.client()
    db.collection(USER_ROLES).document(user_record.uid).set(
        {
            "email": form.email.data,
            "role": "admin",
            "displayName": form.display_name.data,
            "createdAt": firestore.SERVER_TIMESTAMP,
            "createdBy": session["user_id"],
        }
    )
    current_app.logger.info(f"Admin account created: {form.email.data}")
    return jsonify({"status": "success", "uid": user_record.uid}), 201
