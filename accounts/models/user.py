"""User model."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, String

from accounts.database import Base
from accounts.models.enums import Role
from accounts.models.mixins import TimestampMixin


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base, TimestampMixin):
    """User account with credentials, profile and reset state."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(reset_code IS NULL) = (reset_code_expires_at IS NULL)",
            name="ck_users_reset_code_pair",
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_user_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    image = Column(String(1024), nullable=False, default="")
    role = Column(String(16), nullable=False, default=Role.USER.value)  # 'user', 'admin'

    # Only set while a password reset is pending
    reset_code = Column(String(6), nullable=True)
    reset_code_expires_at = Column(DateTime(timezone=True), nullable=True)
