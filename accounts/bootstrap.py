"""Startup tasks."""

import logging

from sqlalchemy.orm import Session

from accounts.config import Settings
from accounts.models.enums import Role
from accounts.models.user import User
from accounts.services.users import UserStore

logger = logging.getLogger(__name__)


def ensure_default_admin(db: Session, settings: Settings) -> User | None:
    """Create an admin from ADMIN_EMAIL / ADMIN_PASSWORD if no admin exists.

    Nothing is created unless both variables are set. An existing account
    with the admin email is promoted instead of duplicated.
    """
    if not (settings.admin_email and settings.admin_password):
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set, skipping default admin")
        return None

    if db.query(User).filter(User.role == Role.ADMIN.value).first():
        return None

    store = UserStore(db)
    existing = store.find_by_email(settings.admin_email)
    if existing:
        admin = store.update(existing.id, {"role": Role.ADMIN})
        logger.warning(f"Promoted existing user {admin.id} to admin")
        return admin

    admin = store.create(
        settings.admin_name,
        settings.admin_email,
        settings.admin_password,
        role=Role.ADMIN,
    )
    logger.warning(f"Created default admin {admin.id}")
    return admin
