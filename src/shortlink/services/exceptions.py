"""Exceptions for the shortlink service layer.

Each exception carries the HTTP status and the short message returned to
the client in the ``{"msg": ...}`` error body. The handlers registered in
``main.py`` do the translation, so services never build responses.
"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for all service-level errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Please enter all fields"


class ConflictError(ServiceError):
    """The resource already exists."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists"


class NotFoundError(ServiceError):
    """Unknown resource, or one the caller does not own."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "URL not found"


class AuthError(ServiceError):
    """Missing, malformed or expired token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token is not valid"


class StoreError(ServiceError):
    """The store rejected or failed a read or write."""
