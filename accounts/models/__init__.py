"""SQLAlchemy models."""

from accounts.models.enums import Role
from accounts.models.user import User

__all__ = [
    "Role",
    "User",
]
