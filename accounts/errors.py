"""Domain errors raised by the account services.

Every error carries the HTTP status it maps to and a message that is safe to
return to the client. The exception handlers in ``accounts.main`` do the
conversion at the request boundary.
"""

from fastapi import status


class AccountError(Exception):
    """Base class for all account-domain failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AccountError):
    """Missing, malformed or mismatched input fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "All fields are required"


class DuplicateEmailError(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists"


class NotFoundError(AccountError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class InvalidCredentialsError(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class InvalidOrExpiredCodeError(AccountError):
    """The reset code does not match, was already used, or has expired."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired OTP"


class UnauthenticatedError(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class ForbiddenError(AccountError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class DeliveryError(AccountError):
    """An email could not be handed to the mail server."""

    default_message = "Failed to send email"


class ImageHostError(AccountError):
    """The image host rejected an upload or destroy call."""

    default_message = "Image upload failed"


class StorageError(AccountError):
    """Unclassified failure of the backing database."""


class InvalidTokenError(Exception):
    """A session token is forged, malformed or expired.

    Not an ``AccountError``: the authorization gate converts it into
    ``UnauthenticatedError`` so that token internals never reach the client.
    """
