"""Password reset via emailed one-time codes."""

import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from accounts.errors import InvalidOrExpiredCodeError, NotFoundError
from accounts.models.user import User
from accounts.services.mailer import Mailer
from accounts.services.users import UserStore

logger = logging.getLogger(__name__)

RESET_CODE_LIFETIME = timedelta(minutes=15)

RESET_EMAIL_SUBJECT = "Password Reset OTP"
RESET_CONFIRMATION_SUBJECT = "Password Reset Successful"


def generate_reset_code() -> str:
    """Six random digits, uniform over 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PasswordResetService:
    """Issues and redeems password reset codes.

    A user with no code (or an expired one) has no active reset. Requesting a
    reset stores a fresh code that is valid for 15 minutes; redeeming it sets
    the new password and clears the code in the same write.
    """

    def __init__(
        self,
        store: UserStore,
        mailer: Mailer,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.mailer = mailer
        self.clock = clock

    def request_reset(self, email: str) -> User:
        """Issue a reset code and email it to the user.

        Raises:
            NotFoundError: no user has this email.
            DeliveryError: the email could not be sent.
        """
        user = self.store.find_by_email(email)
        if user is None:
            raise NotFoundError()

        code = generate_reset_code()
        expires_at = self.clock() + RESET_CODE_LIFETIME
        user = self.store.start_reset(user.id, code, expires_at)
        logger.info(f"Issued password reset code for user {user.id}")

        minutes = int(RESET_CODE_LIFETIME.total_seconds() // 60)
        html = (
            f"<p>Your OTP for password reset is: <strong>{code}</strong></p>"
            f"<p>This OTP will expire in {minutes} minutes.</p>"
        )
        self.mailer.send(user.email, RESET_EMAIL_SUBJECT, html)
        return user

    def redeem_reset(self, email: str, code: str, new_password: str) -> User:
        """Set a new password using a live reset code.

        Raises:
            InvalidOrExpiredCodeError: wrong email or code, code already used,
                or the code has expired.
            DeliveryError: the confirmation email could not be sent.
        """
        user = self.store.consume_reset_code(email, code, new_password, now=self.clock())
        if user is None:
            logger.warning("Rejected password reset with invalid or expired code")
            raise InvalidOrExpiredCodeError()

        logger.info(f"Password reset completed for user {user.id}")
        self.mailer.send(
            user.email,
            RESET_CONFIRMATION_SUBJECT,
            "<p>Your password has been successfully reset.</p>",
        )
        return user
