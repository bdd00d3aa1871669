"""Session token issuing and verification."""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from accounts.config import Settings
from accounts.errors import InvalidTokenError

logger = logging.getLogger(__name__)

SESSION_LIFETIME = timedelta(hours=5)


class TokenService:
    """Signs and validates stateless session tokens.

    Tokens are HS256 JWTs carrying the user id in ``sub``. Nothing is stored
    server-side, so a token stays valid until it expires.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = SESSION_LIFETIME,
    ) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(minutes=settings.jwt_expiration_minutes),
        )

    @property
    def max_age_seconds(self) -> int:
        """Lifetime in seconds, used for the session cookie."""
        return int(self.lifetime.total_seconds())

    def issue(self, user_id: str, issued_at: datetime | None = None) -> str:
        """Create a signed token for the user."""
        now = issued_at or datetime.now(UTC)
        to_encode = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the user id carried by a valid token.

        Raises:
            InvalidTokenError: the token is forged, malformed, expired or has
                no subject.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidTokenError("Token has no subject")
        return user_id
