"""Partner-facing sub-order flow: accept with a quote, reject, progress preparation."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.core.errors import InputValidationError, InvalidStateError
from marketplace.models import SubOrder
from marketplace.models.order import ORDER_CANCELLED, ORDER_DELIVERED, ORDER_PICKED_UP
from marketplace.models.sub_order import (
    SUB_ORDER_ACCEPTED,
    SUB_ORDER_CREATED,
    SUB_ORDER_PREPARING,
    SUB_ORDER_READY,
    SUB_ORDER_REJECTED,
)
from marketplace.schemas.auth import Actor
from marketplace.services import order_store
from marketplace.services.audit_service import log_action
from marketplace.services.authorization import (
    OP_ACCEPT_SUB_ORDER,
    OP_PARTNER_ONLY,
    OP_PROGRESS_SUB_ORDER,
    OP_REJECT_SUB_ORDER,
    ensure_can_perform,
)
from marketplace.services.notification_service import EVENT_SUB_ORDER_STATUS, Notifier, notify
from marketplace.services.order_store import sub_order_snapshot
from marketplace.services.partner_service import with_resolved_partner
from marketplace.utils.money import parse_amount

logger = logging.getLogger(__name__)

PREPARATION_PREREQUISITE: dict[str, str] = {
    SUB_ORDER_PREPARING: SUB_ORDER_ACCEPTED,
    SUB_ORDER_READY: SUB_ORDER_PREPARING,
}

# Once the courier has the goods, or the order is gone, the shop side is settled.
FROZEN_ORDER_STATUSES: frozenset[str] = frozenset({ORDER_PICKED_UP, ORDER_DELIVERED, ORDER_CANCELLED})


def _ensure_order_open(db: Session, sub_order: SubOrder) -> None:
    order = order_store.require_order(db, sub_order.order_id)
    if order.status in FROZEN_ORDER_STATUSES:
        raise InvalidStateError(f"Order is {order.status}; its sub-orders can no longer change")


def _finish(
    db: Session,
    actor: Actor,
    sub_order: SubOrder,
    action_type: str,
    before: dict,
    notifier: Notifier | None,
) -> SubOrder:
    db.commit()
    db.refresh(sub_order)
    log_action(
        db,
        actor=actor,
        action_type=action_type,
        order_id=sub_order.order_id,
        sub_order_id=sub_order.id,
        before_snapshot=before,
        after_snapshot=sub_order_snapshot(sub_order),
    )
    db.commit()
    logger.info("[SUB_ORDERS] %s sub_order_id=%s partner=%s", action_type, sub_order.id, sub_order.partner_id)
    notify(
        notifier,
        "admin",
        EVENT_SUB_ORDER_STATUS,
        {"order_id": sub_order.order_id, "sub_order_id": sub_order.id, "status": sub_order.status},
    )
    return sub_order


def list_my_sub_orders(db: Session, actor: Actor, status: str | None = None) -> list[SubOrder]:
    """Sub-orders addressed to the caller's shop, newest first."""
    ensure_can_perform(actor, OP_PARTNER_ONLY)
    partner_id = with_resolved_partner(db, actor).partner_id
    statement = select(SubOrder).where(SubOrder.partner_id == partner_id).order_by(SubOrder.created_at.desc())
    if status is not None:
        statement = statement.where(SubOrder.status == status)
    return list(db.scalars(statement).all())


def accept_sub_order(
    db: Session,
    actor: Actor,
    sub_order_id: str,
    price: object,
    notifier: Notifier | None = None,
) -> SubOrder:
    """Owning partner accepts and quotes: CREATED -> ACCEPTED."""
    quoted = parse_amount(price, "price")
    if quoted <= 0:
        raise InputValidationError("price must be greater than 0")
    actor = with_resolved_partner(db, actor)
    sub_order = order_store.require_sub_order(db, sub_order_id)
    ensure_can_perform(actor, OP_ACCEPT_SUB_ORDER, sub_order)
    _ensure_order_open(db, sub_order)

    before = sub_order_snapshot(sub_order)
    order_store.transition_sub_order(db, sub_order, SUB_ORDER_CREATED, SUB_ORDER_ACCEPTED, price=quoted)
    return _finish(db, actor, sub_order, "SUB_ORDER_ACCEPTED", before, notifier)


def reject_sub_order(db: Session, actor: Actor, sub_order_id: str, notifier: Notifier | None = None) -> SubOrder:
    """Owning partner declines: CREATED -> REJECTED."""
    actor = with_resolved_partner(db, actor)
    sub_order = order_store.require_sub_order(db, sub_order_id)
    ensure_can_perform(actor, OP_REJECT_SUB_ORDER, sub_order)
    _ensure_order_open(db, sub_order)

    before = sub_order_snapshot(sub_order)
    order_store.transition_sub_order(db, sub_order, SUB_ORDER_CREATED, SUB_ORDER_REJECTED)
    return _finish(db, actor, sub_order, "SUB_ORDER_REJECTED", before, notifier)


def update_sub_order_status(
    db: Session,
    actor: Actor,
    sub_order_id: str,
    status: str,
    notifier: Notifier | None = None,
) -> SubOrder:
    """Owning partner reports preparation progress: ACCEPTED -> PREPARING -> READY."""
    if status not in PREPARATION_PREREQUISITE:
        raise InputValidationError(f"Invalid status. Allowed: {', '.join(PREPARATION_PREREQUISITE)}")
    actor = with_resolved_partner(db, actor)
    sub_order = order_store.require_sub_order(db, sub_order_id)
    ensure_can_perform(actor, OP_PROGRESS_SUB_ORDER, sub_order)
    _ensure_order_open(db, sub_order)

    expected = PREPARATION_PREREQUISITE[status]
    if sub_order.status != expected:
        raise InvalidStateError(f"Sub-order must be {expected} before {status}")

    before = sub_order_snapshot(sub_order)
    order_store.transition_sub_order(db, sub_order, expected, status)
    return _finish(db, actor, sub_order, f"SUB_ORDER_{status}", before, notifier)
