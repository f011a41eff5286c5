"""Database seeding helpers."""

import logging

from sqlalchemy.orm import Session

from stockaudit.core.config import settings
from stockaudit.core.security import get_password_hash
from stockaudit.services.user_service import create_user, get_user_by_username

logger = logging.getLogger(__name__)


def ensure_default_admin(db: Session) -> bool:
    """Ensure the dev bootstrap admin from ADMIN_USER / ADMIN_PASS exists and is active.

    Returns:
        bool: True when the account existed before this call.
    """
    if settings.app_env != "dev" or not settings.admin_user or not settings.admin_pass:
        logger.info("[BOOTSTRAP] Admin bootstrap skipped (env=%s)", settings.app_env)
        return False

    existing = get_user_by_username(db=db, username=settings.admin_user)
    if existing is not None:
        if not existing.is_active or existing.role != "ADMIN":
            logger.warning(
                "[BOOTSTRAP] Admin %s repaired (active=%s, role=%s)",
                existing.username,
                existing.is_active,
                existing.role,
            )
            existing.is_active = True
            existing.role = "ADMIN"
            db.commit()
        return True

    create_user(
        db=db,
        username=settings.admin_user,
        hashed_password=get_password_hash(settings.admin_pass),
        role="ADMIN",
    )
    logger.warning("[BOOTSTRAP] Admin account %s created from ADMIN_USER.", settings.admin_user)
    return False
