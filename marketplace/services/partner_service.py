"""Partner ownership resolution and admin partner management."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.core.errors import (
    DENY_NOT_OWNER,
    InputValidationError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    PartnerNotOnboardedError,
)
from marketplace.models import Partner, User
from marketplace.models.partner import (
    PARTNER_APPROVED,
    PARTNER_PENDING,
    PARTNER_REJECTED,
    PARTNER_STATUSES,
    PARTNER_SUSPENDED,
)
from marketplace.models.user import ROLE_PARTNER
from marketplace.schemas.auth import Actor
from marketplace.services.authorization import (
    OP_ADMIN_ONLY,
    OP_PARTNER_ONLY,
    OP_SUBMIT_PARTNER_PROFILE,
    ensure_can_perform,
)
from marketplace.utils.time import utcnow

logger = logging.getLogger(__name__)


def resolve_partner_id(db: Session, actor: Actor) -> str:
    """Resolve the partner owned by ``actor``.

    Tries the token-embedded partner id, then the Partner linked to the user,
    then the Partner registered under the user's phone.
    """
    if actor.partner_id:
        return actor.partner_id

    partner_id = db.scalar(select(Partner.id).where(Partner.user_id == actor.id).limit(1))
    if partner_id is None and actor.phone:
        partner_id = db.scalar(select(Partner.id).where(Partner.phone == actor.phone).limit(1))
    if partner_id is None:
        raise PartnerNotOnboardedError()
    return partner_id


def with_resolved_partner(db: Session, actor: Actor) -> Actor:
    """Return ``actor`` carrying its resolved partner id."""
    return actor.model_copy(update={"partner_id": resolve_partner_id(db, actor)})


def require_partner(db: Session, partner_id: str) -> Partner:
    partner = db.get(Partner, partner_id)
    if partner is None:
        raise NotFoundError("Partner not found")
    return partner


def list_partners(db: Session, actor: Actor, status: str | None = None) -> list[Partner]:
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    statement = select(Partner).order_by(Partner.created_at.desc())
    if status is not None:
        statement = statement.where(Partner.status == status)
    return list(db.scalars(statement).all())


def update_partner_status(
    db: Session,
    actor: Actor,
    partner_id: str,
    status: str,
    rejection_reason: str | None = None,
) -> Partner:
    """Approve, reject, suspend or reset a partner application."""
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    if status not in PARTNER_STATUSES:
        raise InputValidationError(f"Invalid status. Must be one of: {', '.join(PARTNER_STATUSES)}")

    partner = require_partner(db, partner_id)
    partner.status = status
    if status == PARTNER_APPROVED:
        partner.approved_by = actor.id
        partner.approved_at = utcnow()
        partner.rejection_reason = None
        if partner.user_id is not None:
            user = db.get(User, partner.user_id)
            if user is not None and user.role != ROLE_PARTNER:
                user.role = ROLE_PARTNER
    elif status == PARTNER_REJECTED:
        partner.rejection_reason = rejection_reason or "Application rejected"
        partner.approved_by = None
        partner.approved_at = None
    elif status == PARTNER_SUSPENDED:
        partner.rejection_reason = rejection_reason or "Account suspended"

    db.commit()
    db.refresh(partner)
    logger.info("[PARTNERS] partner_id=%s status=%s by admin=%s", partner.id, status, actor.id)
    return partner


def update_shop_status(db: Session, actor: Actor, is_open: bool) -> Partner:
    """Open or close the caller's own shop."""
    ensure_can_perform(actor, OP_PARTNER_ONLY)
    partner = require_partner(db, resolve_partner_id(db, actor))
    partner.is_open = is_open
    db.commit()
    db.refresh(partner)
    return partner


def submit_partner_profile(
    db: Session,
    actor: Actor,
    owner_name: str,
    restaurant_name: str,
    address: str,
) -> Partner:
    """Create or refresh the caller's shop application under their verified phone.

    A new or rejected application goes (back) to PENDING; an approved shop only
    updates its details. The user becomes a PARTNER when an admin approves.
    """
    ensure_can_perform(actor, OP_SUBMIT_PARTNER_PROFILE)
    if not actor.phone:
        raise InputValidationError("A verified phone is required to onboard")
    owner_name = owner_name.strip()
    restaurant_name = restaurant_name.strip()
    address = address.strip()
    if not owner_name or not restaurant_name or not address:
        raise InputValidationError("owner_name, restaurant_name and address are required")

    partner = db.scalar(select(Partner).where(Partner.user_id == actor.id))
    if partner is None:
        partner = db.scalar(select(Partner).where(Partner.phone == actor.phone))
        if partner is not None and partner.user_id is not None and partner.user_id != actor.id:
            raise NotAuthorizedError("Phone is registered to another partner", reason=DENY_NOT_OWNER)

    if partner is None:
        partner = Partner(phone=actor.phone, status=PARTNER_PENDING, is_open=True)
        db.add(partner)
    elif partner.status == PARTNER_SUSPENDED:
        raise InvalidStateError("Suspended partners cannot resubmit their profile")

    partner.user_id = actor.id
    partner.owner_name = owner_name
    partner.restaurant_name = restaurant_name
    partner.address = address
    if partner.status != PARTNER_APPROVED:
        partner.status = PARTNER_PENDING
        partner.rejection_reason = None

    db.commit()
    db.refresh(partner)
    logger.info("[PARTNERS] profile submitted partner_id=%s user=%s status=%s", partner.id, actor.id, partner.status)
    return partner


def get_my_partner_status(db: Session, actor: Actor) -> Partner:
    """The caller's own shop application, whatever its review status."""
    try:
        partner_id = resolve_partner_id(db, actor)
    except PartnerNotOnboardedError as exc:
        raise NotFoundError("No partner profile found") from exc
    return require_partner(db, partner_id)
