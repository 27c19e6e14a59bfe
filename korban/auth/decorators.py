"""Decorators for the auth blueprint."""

from functools import wraps

from flask import jsonify, session

from korban.errors import AppError


def login_required(f=None, admin_required=False):
    """Reject the request unless a user is signed in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session:
                return (
                    jsonify({"status": "error", "message": "Please sign in."}),
                    401,
                )
            if admin_required and not session.get("is_admin"):
                return (
                    jsonify(
                        {
                            "status": "error",
                            "message": "You are not authorized to perform this action.",
                        }
                    ),
                    403,
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator


def ensure_participant_access(participant_id):
    """Allow admins, or the participant whose record is being accessed."""
    if session.get("is_admin"):
        return
    if session.get("participant_id") == participant_id:
        return
    raise AppError("You are not authorized to view this participant.", 403)
