"""Password hashing."""

from passlib.context import CryptContext

BCRYPT_ROUNDS = 10
MIN_PASSWORD_LENGTH = 6


class PasswordHasher:
    """One-way bcrypt hashing with a random salt baked into every hash."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, plain_password: str) -> str:
        """Hash a password."""
        return self._context.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: str | None) -> bool:
        """Verify a password against its hash.

        Returns False for a mismatch and for anything that is not a
        recognisable hash, rather than raising.
        """
        if not plain_password or not hashed_password:
            return False
        try:
            return self._context.verify(plain_password, hashed_password)
        except ValueError:
            return False
