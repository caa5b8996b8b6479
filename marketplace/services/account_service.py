"""Account provisioning helpers."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import InputValidationError
from marketplace.models import Partner, User
from marketplace.models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DELIVERY, ROLE_PARTNER
from marketplace.utils.time import utcnow

logger = logging.getLogger(__name__)

# Admins are only provisioned through the admin bootstrap.
SELF_REGISTER_ROLES = (ROLE_CUSTOMER, ROLE_PARTNER, ROLE_DELIVERY)


def get_user_by_phone(db: Session, phone: str) -> User | None:
    return db.scalar(select(User).where(User.phone == phone).limit(1))


def _registration_details(name: str | None, role: str | None) -> tuple[str, str]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise InputValidationError("Name is required for new users")
    clean_role = (role or ROLE_CUSTOMER).strip().upper()
    if clean_role not in SELF_REGISTER_ROLES:
        raise InputValidationError(f"Invalid role. Allowed: {', '.join(SELF_REGISTER_ROLES)}")
    return clean_name, clean_role


def login_verified_phone(
    db: Session,
    phone: str,
    name: str | None = None,
    role: str | None = None,
) -> tuple[User, str | None]:
    """Return the user behind a verified phone, registering it on first login.

    New users must give a name and may pick a non-admin role (CUSTOMER by
    default). Existing users keep their role. The second element is the
    partner id to embed in the token, if any.
    """
    user = get_user_by_phone(db, phone)
    if user is None:
        clean_name, clean_role = _registration_details(name, role)
        user = User(phone=phone, name=clean_name, role=clean_role)
        db.add(user)
        logger.info("[AUTH] New %s registered phone=%s", clean_role.lower(), phone)
    user.is_verified = True
    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)

    partner_id = None
    if user.role == ROLE_PARTNER:
        partner_id = db.scalar(select(Partner.id).where(Partner.user_id == user.id).limit(1))
    return user, partner_id


def ensure_default_admin(db: Session) -> bool:
    """Ensure the configured admin phone maps to an active admin.

    Returns:
        bool: True when the admin user existed before this call.
    """
    if not settings.admin_phone:
        logger.info("[BOOTSTRAP] ADMIN_PHONE not set; skipping admin bootstrap.")
        return False

    existing_admin = get_user_by_phone(db, settings.admin_phone)
    if existing_admin is not None:
        updates_applied = False
        if not existing_admin.is_active:
            existing_admin.is_active = True
            updates_applied = True
            logger.info("[BOOTSTRAP] Admin exists but was inactive; account re-activated.")
        if existing_admin.role != ROLE_ADMIN:
            logger.warning(
                "[BOOTSTRAP] Admin phone belonged to role=%s; promoting to ADMIN.",
                existing_admin.role,
            )
            existing_admin.role = ROLE_ADMIN
            updates_applied = True
        if updates_applied:
            db.commit()
        logger.info("[BOOTSTRAP] Admin exists")
        return True

    db.add(User(phone=settings.admin_phone, name=settings.admin_name, role=ROLE_ADMIN, is_verified=True, is_active=True))
    db.commit()
    logger.warning("[SECURITY] Default admin account created for phone=%s.", settings.admin_phone)
    return False
