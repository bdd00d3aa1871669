"""Request-time identity resolution and role checks."""

import logging

from accounts.errors import ForbiddenError, InvalidTokenError, UnauthenticatedError
from accounts.models.enums import Role
from accounts.schemas.user import Identity
from accounts.services.tokens import TokenService
from accounts.services.users import UserStore

logger = logging.getLogger(__name__)

SESSION_COOKIE = "token"


def extract_token(cookie: str | None, authorization: str | None) -> str | None:
    """Pick the session token from the cookie, falling back to a bearer header."""
    if cookie:
        return cookie
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None


def resolve_identity(token: str | None, tokens: TokenService, store: UserStore) -> Identity:
    """Resolve a session token to the identity of an existing user.

    Raises:
        UnauthenticatedError: the token is missing, invalid or expired, or the
            user it names no longer exists.
    """
    if not token:
        raise UnauthenticatedError("Not authorized, token missing")

    try:
        user_id = tokens.verify(token)
    except InvalidTokenError as e:
        logger.warning(f"Rejected session token: {e}")
        raise UnauthenticatedError("Not authorized, token invalid") from e

    user = store.find_by_id(user_id)
    if user is None:
        raise UnauthenticatedError("Not authorized, user not found")

    return Identity.model_validate(user)


def check_role(identity: Identity, roles: tuple[Role, ...]) -> Identity:
    """Ensure the identity holds one of ``roles``."""
    if not identity.role.is_any(*roles):
        required = ", ".join(role.value for role in roles)
        raise ForbiddenError(f"Access denied. Required role(s): {required}")
    return identity
