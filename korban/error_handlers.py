"""Error handlers returning JSON payloads for the API."""

from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import (
    AppError,
    DuplicateResourceError,
    InvalidTransitionError,
    NotFoundError,
    UploadError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code, **extra):
    payload = {"status": "error", "message": message}
    payload.update(extra)
    return jsonify(payload), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(InvalidTransitionError)
def handle_invalid_transition_error(error):
    """Handles attempts to act on an already processed record."""
    current_app.logger.warning(f"Invalid Transition: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(UploadError)
def handle_upload_error(error):
    """Handles receipt upload failures, adding the escalation contact."""
    current_app.logger.error(f"Upload Error ({type(error).__name__}): {error.message}")
    contact = {
        "phone": current_app.config.get("ADMIN_CONTACT_PHONE"),
        "email": current_app.config.get("ADMIN_CONTACT_EMAIL"),
    }
    return _error_response(
        error.message,
        error.status_code,
        retryable=True,
        contact=contact,
        hint="If the problem persists, contact the administrator.",
    )


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("Not found.", 404)


@error_handlers_bp.app_errorhandler(413)
def handle_413(e):
    """Handles request bodies larger than MAX_CONTENT_LENGTH."""
    return _error_response("The uploaded file is too large.", 413)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("An unexpected error occurred.", 500)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors, which usually indicate an expired session."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _error_response(
        "Your session may have expired. Please try your action again.", 400
    )
