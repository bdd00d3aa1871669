"""Enums for model fields."""

from enum import Enum


class Role(str, Enum):
    """Access roles a user account can hold."""

    USER = "user"
    ADMIN = "admin"

    def is_any(self, *roles: "Role") -> bool:
        """Check if this role is one of the given roles."""
        return self in roles
