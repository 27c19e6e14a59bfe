"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class InvalidTransitionError(AppError):
    """Raised when acting on a record that has already been decided."""

    def __init__(self, message="This record has already been processed."):
        """Initialize the error."""
        super().__init__(message, 409)


class UploadError(AppError):
    """Base class for receipt upload failures."""

    default_message = "Failed to upload the receipt. Please try again."

    def __init__(self, message=None):
        """Initialize the error."""
        super().__init__(message or self.default_message, 502)


class UploadPermissionError(UploadError):
    """The storage backend refused the upload or could not be reached."""

    default_message = (
        "Permission or connection error. Check your internet connection, "
        "sign in again, and retry (a smaller file may help)."
    )


class UploadCancelledError(UploadError):
    """The upload was cancelled before it completed."""

    default_message = "The upload was cancelled. Please try again."


class UploadUnknownError(UploadError):
    """The upload failed for a reason the backend did not report."""

    default_message = (
        "An unknown error occurred. Check your internet connection and try again."
    )
