"""Typed errors raised by the users API.

Each error carries the HTTP status it maps to; ``app.api.errors`` turns them
into JSON responses of the form ``{"error": "<message>"}``.
"""
from __future__ import annotations


class UsersApiError(Exception):
    """Base exception for all users API errors."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RequestDataError(UsersApiError):
    """Raised when request data is missing or malformed."""

    status_code = 400
    default_message = "Invalid request"


class UnsupportedContentTypeError(RequestDataError):
    """Raised when a create/update body is neither a form nor JSON."""

    status_code = 415
    default_message = "Request body must be form data or JSON"


class UnsupportedMediaError(RequestDataError):
    """Raised when an uploaded file is not an image."""

    default_message = "Only image files are allowed"


class UserNotFoundError(UsersApiError):
    """Raised when no user exists for the given identifier."""

    status_code = 404
    default_message = "User not found"

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__()


class UserImageNotFoundError(UsersApiError):
    """Raised when a user is missing or has no retrievable image."""

    status_code = 404
    default_message = "User not found or image not available"

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__()


class StorageError(UsersApiError):
    """Raised when an uploaded file cannot be written to disk."""

    status_code = 500
    default_message = "Failed to store uploaded file"
