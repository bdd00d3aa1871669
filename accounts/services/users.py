"""Credential store: persistence of user records.

All writes that touch the password go through ``PasswordHasher`` here, so no
caller can persist a plaintext secret by accident.
"""

import logging
import re
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from accounts.errors import (
    DuplicateEmailError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from accounts.models.enums import Role
from accounts.models.user import User
from accounts.services.passwords import MIN_PASSWORD_LENGTH, PasswordHasher

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}", re.ASCII)

UPDATABLE_FIELDS = frozenset(
    {"name", "email", "password", "image", "role", "reset_code", "reset_code_expires_at"}
)


def validate_email(email: str) -> None:
    if not email or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Please provide a valid email")


def validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class UserStore:
    """Read and write user records."""

    def __init__(self, db: Session, hasher: PasswordHasher | None = None):
        self.db = db
        self.hasher = hasher or PasswordHasher()

    def find_by_id(self, user_id: str) -> User | None:
        """Get a user by id."""
        return self.db.query(User).filter(User.id == str(user_id)).first()

    def find_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        return self.db.query(User).filter(User.email == email).first()

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.created_at).all()

    def create(
        self,
        name: str,
        email: str,
        password: str,
        image: str = "",
        role: Role = Role.USER,
    ) -> User:
        """Create a new user.

        Raises:
            ValidationError: empty name, malformed email or short password.
            DuplicateEmailError: the email already belongs to a user.
        """
        if not name:
            raise ValidationError("Name is required")
        validate_email(email)
        validate_password(password)

        if self.find_by_email(email):
            raise DuplicateEmailError()

        user = User(
            name=name,
            email=email,
            password_hash=self.hasher.hash(password),
            image=image or "",
            role=Role(role).value,
        )
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        logger.info(f"Created user {user.id}")
        return user

    def update(self, user_id: str, patch: dict[str, Any]) -> User:
        """Apply a partial update to a user.

        A ``password`` entry is hashed into ``password_hash``; other keys are
        written as given.

        Raises:
            NotFoundError: no user with this id.
            DuplicateEmailError: the new email belongs to another user.
            ValidationError: unknown field or invalid value.
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError()

        changes = dict(patch)
        if "name" in changes and not changes["name"]:
            raise ValidationError("Name is required")
        if "email" in changes and changes["email"] != user.email:
            validate_email(changes["email"])
            if self.find_by_email(changes["email"]):
                raise DuplicateEmailError("Email already in use")
        if "password" in changes:
            password = changes.pop("password")
            validate_password(password)
            changes["password_hash"] = self.hasher.hash(password)
        if "role" in changes:
            changes["role"] = Role(changes["role"]).value
        if ("reset_code" in changes) != ("reset_code_expires_at" in changes):
            raise ValidationError("reset_code and reset_code_expires_at must change together")

        for field, value in changes.items():
            setattr(user, field, value)

        self._commit(duplicate_message="Email already in use")
        self.db.refresh(user)
        return user

    def delete(self, user_id: str) -> None:
        """Delete a user. Any hosted avatar must be released beforehand."""
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError()
        self.db.delete(user)
        self._commit()
        logger.info(f"Deleted user {user_id}")

    def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a user by email and password."""
        user = self.find_by_email(email)
        if not user:
            return None
        if not self.hasher.verify(password, user.password_hash):
            return None
        return user

    def start_reset(self, user_id: str, code: str, expires_at: datetime) -> User:
        """Store a reset code and its expiry on the user."""
        return self.update(user_id, {"reset_code": code, "reset_code_expires_at": expires_at})

    def consume_reset_code(
        self,
        email: str,
        code: str,
        new_password: str,
        now: datetime,
    ) -> User | None:
        """Set a new password if ``code`` is the user's live reset code.

        The password change and the clearing of the reset fields happen in a
        single conditional UPDATE, so a code can be redeemed at most once.
        Returns the updated user, or None when nothing matched.
        """
        validate_password(new_password)
        password_hash = self.hasher.hash(new_password)

        matched = (
            self.db.query(User)
            .filter(
                User.email == email,
                User.reset_code == code,
                User.reset_code_expires_at > now,
            )
            .update(
                {
                    User.password_hash: password_hash,
                    User.reset_code: None,
                    User.reset_code_expires_at: None,
                },
                synchronize_session=False,
            )
        )
        self._commit()
        if matched != 1:
            return None

        user = self.find_by_email(email)
        if user is not None:
            self.db.refresh(user)
        return user

    def _commit(self, duplicate_message: str | None = None) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if "email" in str(e.orig).lower():
                raise DuplicateEmailError(duplicate_message) from e
            logger.error(f"Integrity error writing user record: {e.orig}")
            raise StorageError() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error writing user record: {e}")
            raise StorageError() from e
