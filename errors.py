"""
Application errors.

Every error carries the HTTP status the API answers with; main.py turns
them into `{"detail": message}` responses.
"""


class AppError(Exception):
    status_code = 500
    message = "Unexpected error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class FormValidationError(AppError):
    """A required field is missing or malformed. Raised before any backend call."""
    status_code = 400
    message = "Please complete all required fields"


class AuthError(AppError):
    status_code = 401
    message = "Authorization required"


class AuthorizationError(AppError):
    status_code = 403
    message = "You are not allowed to perform this action"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class BackendError(AppError):
    """The document store failed. The message never carries the driver error."""
    status_code = 500
    message = "Error talking to the database"
