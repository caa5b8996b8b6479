"""Order lifecycle engine.

Legal ``Order.status`` edges::

    CREATED   -> PRICED      admin prices a CUSTOM order
    (new)     -> CONFIRMED   SHOP orders are confirmed and paid at creation
    PRICED    -> CONFIRMED   customer confirms the price
    CONFIRMED -> ASSIGNED    admin assigns, or a delivery actor accepts the job
    ASSIGNED  -> PICKED_UP   assigned delivery actor
    PICKED_UP -> DELIVERED   assigned delivery actor
    CREATED | PRICED | CONFIRMED -> CANCELLED   owning customer

Every write goes through ``order_store.transition_order`` so a concurrent
writer that already moved the order makes this call fail with INVALID_STATE
instead of silently overwriting it. ``Order.status`` is canonical; sub-orders
and delivery jobs only mirror it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import (
    ConsistencyError,
    InputValidationError,
    InvalidStateError,
    NotFoundError,
    PartnerNotOnboardedError,
)
from marketplace.models import DeliveryJob, Order, OrderItem, Partner, SubOrder, User
from marketplace.models.delivery_job import JOB_ASSIGNED, job_status_for_order
from marketplace.models.order import (
    ORDER_ASSIGNED,
    ORDER_CANCELLED,
    ORDER_CONFIRMED,
    ORDER_CREATED,
    ORDER_DELIVERED,
    ORDER_PICKED_UP,
    ORDER_PRICED,
    ORDER_TYPE_CUSTOM,
    ORDER_TYPE_SHOP,
    PAYMENT_PAID,
    PAYMENT_PENDING,
)
from marketplace.models.partner import PARTNER_APPROVED
from marketplace.models.sub_order import (
    LIVE_SUB_ORDER_STATUSES,
    SUB_ORDER_ACCEPTED,
    SUB_ORDER_CANCELLED,
    SUB_ORDER_CREATED,
    SUB_ORDER_DELIVERED,
    SUB_ORDER_PICKED_UP,
    SUB_ORDER_PREPARING,
    SUB_ORDER_READY,
)
from marketplace.models.user import ROLE_DELIVERY, ROLE_PARTNER
from marketplace.schemas.auth import Actor
from marketplace.schemas.order import CustomOrderStatusRead, OrderItemIn, SubOrderItemIn
from marketplace.services import order_store
from marketplace.services.audit_service import log_action
from marketplace.services.authorization import (
    OP_ACCEPT_DELIVERY_JOB,
    OP_ADMIN_ONLY,
    OP_ASSIGN_DELIVERY,
    OP_ASSIGN_PARTNER,
    OP_CANCEL_ORDER,
    OP_CONFIRM_PRICE,
    OP_CREATE_ORDER,
    OP_PRICE_ORDER,
    OP_UPDATE_DELIVERY_STATUS,
    OP_VIEW_CUSTOM_ORDER_STATUS,
    OP_VIEW_ORDER,
    ensure_can_perform,
)
from marketplace.services.notification_service import (
    EVENT_ORDER_NEW,
    EVENT_ORDER_STATUS,
    EVENT_SUB_ORDER_NEW,
    Notifier,
    notify,
)
from marketplace.services.order_store import order_snapshot
from marketplace.services.partner_service import require_partner, with_resolved_partner
from marketplace.utils.money import parse_amount

logger = logging.getLogger(__name__)

DELIVERY_STATUS_PREREQUISITE: dict[str, str] = {
    ORDER_PICKED_UP: ORDER_ASSIGNED,
    ORDER_DELIVERED: ORDER_PICKED_UP,
}


def _status_event(notifier: Notifier | None, order: Order) -> None:
    payload = {"order_id": order.id, "status": order.status}
    notify(notifier, f"customer:{order.customer_id}", EVENT_ORDER_STATUS, payload)
    if order.partner_id is not None:
        notify(notifier, f"partner:{order.partner_id}", EVENT_ORDER_STATUS, payload)


def _commit_transition(
    db: Session,
    actor: Actor,
    order: Order,
    action_type: str,
    before: dict,
    notifier: Notifier | None,
) -> Order:
    db.commit()
    db.refresh(order)
    log_action(db, actor=actor, action_type=action_type, order_id=order.id, before_snapshot=before, after_snapshot=order_snapshot(order))
    db.commit()
    logger.info("[ORDERS] %s order_id=%s %s -> %s by %s=%s", action_type, order.id, before["status"], order.status, actor.role, actor.id)
    _status_event(notifier, order)
    return order_store.load_order_with_identities(db, order.id)


def create_order(
    db: Session,
    actor: Actor,
    *,
    order_type: str,
    delivery_address: str | None,
    partner_id: str | None = None,
    note: str | None = None,
    items: Sequence[OrderItemIn] | None = None,
    notifier: Notifier | None = None,
) -> Order:
    """Create a SHOP order (confirmed and paid immediately) or a CUSTOM request."""
    ensure_can_perform(actor, OP_CREATE_ORDER)
    address = (delivery_address or "").strip()
    if not address:
        raise InputValidationError("Delivery address is required")

    if order_type == ORDER_TYPE_SHOP:
        order = _create_shop_order(db, actor, address, partner_id, note, items)
        notify(notifier, f"partner:{order.partner_id}", EVENT_ORDER_NEW, {"order_id": order.id, "grand_total": str(order.grand_total)})
    elif order_type == ORDER_TYPE_CUSTOM:
        order = _create_custom_order(db, actor, address, partner_id, note, items)
        notify(notifier, "admin", EVENT_ORDER_NEW, {"order_id": order.id, "order_type": ORDER_TYPE_CUSTOM})
    else:
        raise InputValidationError(f"Invalid order type: {order_type}")

    logger.info("[ORDERS] %s order %s created by customer=%s", order.order_type, order.id, actor.id)
    return order_store.load_order_with_identities(db, order.id)


def _create_shop_order(
    db: Session,
    actor: Actor,
    address: str,
    partner_id: str | None,
    note: str | None,
    items: Sequence[OrderItemIn] | None,
) -> Order:
    if not partner_id:
        raise InputValidationError("partner_id is required for shop orders")
    if not items:
        raise InputValidationError("Items are required for shop orders")

    partner = db.get(Partner, partner_id)
    if partner is None:
        raise NotFoundError("Restaurant not found")
    if partner.status != PARTNER_APPROVED:
        raise InvalidStateError("Restaurant is not approved for orders")
    if not partner.is_open:
        raise InvalidStateError("Restaurant is currently closed")

    item_total = Decimal("0.00")
    lines: list[OrderItem] = []
    for position, item in enumerate(items):
        name = item.name.strip()
        if not name:
            raise InputValidationError("Item name is required")
        if item.quantity < 1:
            raise InputValidationError(f"Quantity for {name} must be >= 1")
        price = parse_amount(item.price, f"price of {name}")
        item_total += price * item.quantity
        lines.append(OrderItem(position=position, name=name, quantity=item.quantity, price=price))

    item_total = parse_amount(item_total, "item_total")
    delivery_fee = settings.delivery_fee
    grand_total = parse_amount(item_total + delivery_fee, "grand_total")
    order = Order(
        order_type=ORDER_TYPE_SHOP,
        customer_id=actor.id,
        partner_id=partner.id,
        delivery_address=address,
        note=(note or "").strip(),
        items=lines,
        item_total=item_total,
        delivery_fee=delivery_fee,
        grand_total=grand_total,
        status=ORDER_CONFIRMED,
        payment_status=PAYMENT_PAID,
    )
    db.add(order)
    db.flush()
    db.add(
        SubOrder(
            order_id=order.id,
            partner_id=partner.id,
            items=[{"name": line.name, "quantity": line.quantity} for line in lines],
            status=SUB_ORDER_CREATED,
        )
    )
    log_action(db, actor=actor, action_type="ORDER_CREATED", order_id=order.id, after_snapshot=order_snapshot(order))
    db.commit()
    return order


def _create_custom_order(
    db: Session,
    actor: Actor,
    address: str,
    partner_id: str | None,
    note: str | None,
    items: Sequence[OrderItemIn] | None,
) -> Order:
    request_text = (note or "").strip()
    if not request_text:
        raise InputValidationError("Describe what you need in the note for custom orders")
    if partner_id:
        raise InputValidationError("Partners are assigned to custom orders by an admin")
    if items:
        raise InputValidationError("Custom orders are described in the note, not as items")

    order = Order(
        order_type=ORDER_TYPE_CUSTOM,
        customer_id=actor.id,
        delivery_address=address,
        note=request_text,
        status=ORDER_CREATED,
        payment_status=PAYMENT_PENDING,
    )
    db.add(order)
    db.flush()
    log_action(db, actor=actor, action_type="ORDER_CREATED", order_id=order.id, after_snapshot=order_snapshot(order))
    db.commit()
    return order


def price_order(
    db: Session,
    actor: Actor,
    order_id: str,
    item_total: object,
    delivery_fee: object,
    notifier: Notifier | None = None,
) -> Order:
    """Admin sets the totals of a CUSTOM order: CREATED -> PRICED."""
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    items_amount = parse_amount(item_total, "item_total")
    fee_amount = parse_amount(delivery_fee, "delivery_fee")
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_PRICE_ORDER, order)

    before = order_snapshot(order)
    order_store.transition_order(
        db,
        order,
        ORDER_CREATED,
        ORDER_PRICED,
        item_total=items_amount,
        delivery_fee=fee_amount,
        grand_total=parse_amount(items_amount + fee_amount, "grand_total"),
    )
    return _commit_transition(db, actor, order, "ORDER_PRICED", before, notifier)


def confirm_price(db: Session, actor: Actor, order_id: str, notifier: Notifier | None = None) -> Order:
    """Customer accepts the quoted price: PRICED -> CONFIRMED, payment PAID."""
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_CONFIRM_PRICE, order)
    if order.item_total is None or order.delivery_fee is None or order.grand_total is None:
        raise InvalidStateError("Order has not been priced")

    before = order_snapshot(order)
    order_store.transition_order(db, order, ORDER_PRICED, ORDER_CONFIRMED, payment_status=PAYMENT_PAID)
    return _commit_transition(db, actor, order, "ORDER_CONFIRMED", before, notifier)


def _assign_delivery_partner(
    db: Session,
    actor: Actor,
    order: Order,
    delivery_partner_id: str,
    action_type: str,
    notifier: Notifier | None,
) -> Order:
    before = order_snapshot(order)
    order_store.transition_order(db, order, ORDER_CONFIRMED, ORDER_ASSIGNED, delivery_partner_id=delivery_partner_id)
    stale_job = db.scalar(select(DeliveryJob.id).where(DeliveryJob.order_id == order.id))
    if stale_job is not None:
        db.rollback()
        raise ConsistencyError(
            "Order already has a delivery job",
            [f"delivery job {stale_job} exists while order was {before['status']}"],
        )
    db.add(DeliveryJob(order_id=order.id, delivery_partner_id=delivery_partner_id, status=JOB_ASSIGNED))
    assigned = _commit_transition(db, actor, order, action_type, before, notifier)
    notify(notifier, f"delivery:{delivery_partner_id}", EVENT_ORDER_NEW, {"order_id": order.id})
    return assigned


def assign_delivery(
    db: Session,
    actor: Actor,
    order_id: str,
    delivery_partner_id: str,
    notifier: Notifier | None = None,
) -> Order:
    """Admin hands a CONFIRMED order to a delivery actor: CONFIRMED -> ASSIGNED."""
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    if not delivery_partner_id:
        raise InputValidationError("delivery_partner_id is required")
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_ASSIGN_DELIVERY, order)

    courier = db.get(User, delivery_partner_id)
    if courier is None or courier.role != ROLE_DELIVERY or not courier.is_active:
        raise NotFoundError("Delivery partner not found")
    return _assign_delivery_partner(db, actor, order, courier.id, "DELIVERY_ASSIGNED", notifier)


def accept_delivery_job(db: Session, actor: Actor, order_id: str, notifier: Notifier | None = None) -> Order:
    """Delivery actor claims an unassigned CONFIRMED order."""
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_ACCEPT_DELIVERY_JOB, order)
    return _assign_delivery_partner(db, actor, order, actor.id, "DELIVERY_JOB_ACCEPTED", notifier)


def update_delivery_status(
    db: Session,
    actor: Actor,
    order_id: str,
    status: str,
    notifier: Notifier | None = None,
) -> Order:
    """Assigned delivery actor moves the order ASSIGNED -> PICKED_UP -> DELIVERED."""
    if status not in DELIVERY_STATUS_PREREQUISITE:
        raise InputValidationError(f"Invalid status update. Allowed: {', '.join(DELIVERY_STATUS_PREREQUISITE)}")
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_UPDATE_DELIVERY_STATUS, order)

    expected = DELIVERY_STATUS_PREREQUISITE[status]
    if order.status != expected:
        raise InvalidStateError(f"Order must be {expected} before being {status.lower().replace('_', ' ')}")

    job = order.delivery_job
    if job is not None and job.status != job_status_for_order(expected):
        raise ConsistencyError(
            "Delivery job disagrees with order status",
            [f"delivery job is {job.status} while order is {order.status}"],
        )

    before = order_snapshot(order)
    order_store.transition_order(db, order, expected, status)
    if job is not None:
        job.status = job_status_for_order(status)
    _mirror_sub_orders(db, order.id, status)
    return _commit_transition(db, actor, order, f"ORDER_{status}", before, notifier)


def _mirror_sub_orders(db: Session, order_id: str, status: str) -> None:
    if status == ORDER_PICKED_UP:
        source, target = (SUB_ORDER_ACCEPTED, SUB_ORDER_PREPARING, SUB_ORDER_READY), SUB_ORDER_PICKED_UP
    elif status == ORDER_DELIVERED:
        source, target = (SUB_ORDER_PICKED_UP,), SUB_ORDER_DELIVERED
    else:
        source, target = LIVE_SUB_ORDER_STATUSES, SUB_ORDER_CANCELLED
    for sub_order in db.scalars(select(SubOrder).where(SubOrder.order_id == order_id, SubOrder.status.in_(source))):
        sub_order.status = target


def cancel_order(db: Session, actor: Actor, order_id: str, notifier: Notifier | None = None) -> Order:
    """Owning customer cancels before delivery is assigned."""
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_CANCEL_ORDER, order)

    before = order_snapshot(order)
    order_store.transition_order(db, order, order.status, ORDER_CANCELLED)
    _mirror_sub_orders(db, order.id, ORDER_CANCELLED)
    return _commit_transition(db, actor, order, "ORDER_CANCELLED", before, notifier)


def get_order_details(db: Session, actor: Actor, order_id: str) -> Order:
    """Return an order to its customer, delivery actor, owning partner or an admin."""
    order = order_store.load_order_with_identities(db, order_id)
    if actor.role == ROLE_PARTNER:
        try:
            actor = with_resolved_partner(db, actor)
        except PartnerNotOnboardedError:
            logger.info("[ORDERS] partner user=%s has no partner profile", actor.id)
    ensure_can_perform(actor, OP_VIEW_ORDER, order)
    return order


def get_custom_order_status(db: Session, actor: Actor, order_id: str) -> CustomOrderStatusRead:
    """Status plus the first accepted sub-order's quote, read independently of ``grand_total``."""
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_VIEW_CUSTOM_ORDER_STATUS, order)
    sub_order = order_store.first_accepted_sub_order(db, order.id)
    return CustomOrderStatusRead(
        order_id=order.id,
        status=order.status,
        price=None if sub_order is None else sub_order.price,
        grand_total=order.grand_total,
    )


def assign_partner(
    db: Session,
    actor: Actor,
    order_id: str,
    partner_id: str,
    items: Sequence[SubOrderItemIn] = (),
    notifier: Notifier | None = None,
) -> SubOrder:
    """Admin routes a CUSTOM order to a partner by opening a sub-order."""
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    order = order_store.require_order(db, order_id)
    ensure_can_perform(actor, OP_ASSIGN_PARTNER, order)

    partner = require_partner(db, partner_id)
    if partner.status != PARTNER_APPROVED:
        raise InvalidStateError("Partner is not approved")
    live = db.scalar(
        select(SubOrder.id).where(SubOrder.order_id == order.id, SubOrder.status.in_(LIVE_SUB_ORDER_STATUSES)).limit(1)
    )
    if live is not None:
        raise InvalidStateError("Order already has an open sub-order")

    before = order_snapshot(order)
    order_store.transition_order(db, order, ORDER_CREATED, ORDER_CREATED, partner_id=partner.id)
    sub_order = SubOrder(
        order_id=order.id,
        partner_id=partner.id,
        items=[{"name": item.name, "quantity": item.quantity} for item in items],
        status=SUB_ORDER_CREATED,
    )
    db.add(sub_order)
    db.commit()
    db.refresh(order)
    db.refresh(sub_order)
    log_action(
        db,
        actor=actor,
        action_type="PARTNER_ASSIGNED",
        order_id=order.id,
        sub_order_id=sub_order.id,
        before_snapshot=before,
        after_snapshot=order_snapshot(order),
    )
    db.commit()
    logger.info("[ORDERS] order_id=%s routed to partner=%s sub_order=%s", order.id, partner.id, sub_order.id)
    notify(notifier, f"partner:{partner.id}", EVENT_SUB_ORDER_NEW, {"order_id": order.id, "sub_order_id": sub_order.id})
    return sub_order
