"""Read-only views derived from order history.

Writes are strict, reads are lenient: a legacy row with a missing or
non-numeric ``grand_total`` counts as zero instead of failing the aggregate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import ColumnElement, String, func, select, type_coerce
from sqlalchemy.orm import Session

from marketplace.core.errors import DENY_WRONG_ROLE, ConsistencyError, NotAuthorizedError, PartnerNotOnboardedError
from marketplace.models import DeliveryJob, Order, Partner, SubOrder
from marketplace.models.delivery_job import job_status_for_order
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
)
from marketplace.models.partner import PARTNER_APPROVED, PARTNER_PENDING
from marketplace.models.sub_order import (
    LIVE_SUB_ORDER_STATUSES,
    SUB_ORDER_ACCEPTED,
    SUB_ORDER_CREATED,
    SUB_ORDER_DELIVERED,
    SUB_ORDER_PICKED_UP,
)
from marketplace.models.user import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DELIVERY, ROLE_PARTNER
from marketplace.schemas.auth import Actor
from marketplace.schemas.stats import ConsistencyReport, DashboardStats, DeliveryStats, PartnerEarnings
from marketplace.services import order_store
from marketplace.services.authorization import OP_ADMIN_ONLY, OP_PARTNER_ONLY, ensure_can_perform
from marketplace.services.partner_service import require_partner, with_resolved_partner
from marketplace.utils.money import CENT, ZERO, as_amount
from marketplace.utils.time import today_window_local

logger = logging.getLogger(__name__)


def _customer_scope(actor: Actor) -> list[ColumnElement[bool]]:
    return [Order.customer_id == actor.id]


def _delivery_scope(actor: Actor) -> list[ColumnElement[bool]]:
    return [Order.delivery_partner_id == actor.id]


def _partner_scope(actor: Actor) -> list[ColumnElement[bool]]:
    return [Order.partner_id == actor.partner_id]


def _admin_scope(actor: Actor) -> list[ColumnElement[bool]]:
    raise NotAuthorizedError("Admins list orders through the admin order list", reason=DENY_WRONG_ROLE)


ORDER_SCOPES: dict[str, Callable[[Actor], list[ColumnElement[bool]]]] = {
    ROLE_CUSTOMER: _customer_scope,
    ROLE_DELIVERY: _delivery_scope,
    ROLE_PARTNER: _partner_scope,
    ROLE_ADMIN: _admin_scope,
}


def order_scope(actor: Actor) -> list[ColumnElement[bool]]:
    """Map an actor to the filter selecting the orders it owns.

    Partner actors must already carry their resolved ``partner_id``.
    """
    try:
        scope = ORDER_SCOPES[actor.role]
    except KeyError as exc:
        raise NotAuthorizedError(f"Unknown role: {actor.role}", reason=DENY_WRONG_ROLE) from exc
    return scope(actor)


def get_my_orders(db: Session, actor: Actor) -> list[Order]:
    """Orders owned by the caller, newest first."""
    if actor.role == ROLE_PARTNER:
        try:
            actor = with_resolved_partner(db, actor)
        except PartnerNotOnboardedError:
            logger.info("[ORDERS] partner user=%s not onboarded; returning no orders", actor.id)
            return []
    return order_store.find_orders(db, *order_scope(actor))


def list_all_orders(db: Session, actor: Actor, status: str | None = None) -> list[Order]:
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    criteria = [] if status is None else [Order.status == status]
    return order_store.find_orders(db, *criteria)


def list_available_jobs(db: Session, actor: Actor) -> list[Order]:
    """CONFIRMED orders nobody has claimed for delivery yet."""
    if actor.role != ROLE_DELIVERY:
        raise NotAuthorizedError("Delivery access only", reason=DENY_WRONG_ROLE)
    return order_store.find_orders(db, Order.status == ORDER_CONFIRMED, Order.delivery_partner_id.is_(None))


def _count(db: Session, model, *criteria: ColumnElement[bool]) -> int:
    statement = select(func.count()).select_from(model)
    if criteria:
        statement = statement.where(*criteria)
    return int(db.scalar(statement) or 0)


def sum_grand_totals(db: Session, *criteria: ColumnElement[bool]) -> Decimal:
    """Sum ``grand_total`` over matching orders, counting unusable values as zero."""
    raw_values = db.scalars(select(type_coerce(Order.grand_total, String)).where(*criteria)).all()
    total = ZERO
    for value in raw_values:
        total += as_amount(value)
    return total.quantize(CENT)


def get_dashboard_stats(db: Session, actor: Actor, now: datetime | None = None) -> DashboardStats:
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    start, end = today_window_local(now)
    return DashboardStats(
        total_orders=_count(db, Order),
        # "PENDING" is not an order status; the counter stays for dashboard compatibility.
        pending_orders=0,
        today_orders=_count(db, Order, Order.created_at >= start, Order.created_at < end),
        total_partners=_count(db, Partner),
        pending_partners=_count(db, Partner, Partner.status == PARTNER_PENDING),
        active_partners=_count(db, Partner, Partner.status == PARTNER_APPROVED, Partner.is_open.is_(True)),
        total_earnings=sum_grand_totals(db, Order.status == ORDER_DELIVERED),
        today=start.astimezone().date().isoformat(),
    )


def get_partner_earnings(db: Session, actor: Actor, now: datetime | None = None) -> PartnerEarnings:
    """Order counts and delivered revenue for the caller's shop."""
    ensure_can_perform(actor, OP_PARTNER_ONLY)
    actor = with_resolved_partner(db, actor)
    partner = require_partner(db, actor.partner_id)
    start, end = today_window_local(now)
    owned = Order.partner_id == partner.id
    delivered = Order.status == ORDER_DELIVERED
    delivered_today = (Order.updated_at >= start, Order.updated_at < end)
    return PartnerEarnings(
        partner_id=partner.id,
        total_orders=_count(db, Order, owned),
        today_orders=_count(db, Order, owned, Order.created_at >= start, Order.created_at < end),
        delivered_orders=_count(db, Order, owned, delivered),
        pending_sub_orders=_count(db, SubOrder, SubOrder.partner_id == partner.id, SubOrder.status == SUB_ORDER_CREATED),
        total_earnings=sum_grand_totals(db, owned, delivered),
        today_earnings=sum_grand_totals(db, owned, delivered, *delivered_today),
        shop_status="OPEN" if partner.is_open else "CLOSED",
    )


def get_delivery_stats(db: Session, actor: Actor, now: datetime | None = None) -> DeliveryStats:
    """Completed and active deliveries for the calling delivery actor."""
    if actor.role != ROLE_DELIVERY:
        raise NotAuthorizedError("Delivery access only", reason=DENY_WRONG_ROLE)
    start, end = today_window_local(now)
    mine = Order.delivery_partner_id == actor.id
    delivered = Order.status == ORDER_DELIVERED
    delivered_today = (Order.updated_at >= start, Order.updated_at < end)
    return DeliveryStats(
        delivery_partner_id=actor.id,
        total_deliveries=_count(db, Order, mine, delivered),
        today_deliveries=_count(db, Order, mine, delivered, *delivered_today),
        active_jobs=_count(db, Order, mine, Order.status.in_((ORDER_ASSIGNED, ORDER_PICKED_UP))),
        total_earnings=sum_grand_totals(db, mine, delivered),
        today_earnings=sum_grand_totals(db, mine, delivered, *delivered_today),
    )


def _consistency_problems(order: Order, job: DeliveryJob | None, sub_orders: list[SubOrder]) -> list[str]:
    problems: list[str] = []
    if order.order_type == ORDER_TYPE_SHOP and order.status == ORDER_PRICED:
        problems.append("shop order is PRICED")
    if (
        order.order_type == ORDER_TYPE_CUSTOM
        and order.status not in (ORDER_CREATED, ORDER_PRICED, ORDER_CANCELLED)
        and order.grand_total is None
    ):
        problems.append(f"custom order is {order.status} without a grand total")

    expected_job = job_status_for_order(order.status)
    if expected_job is not None and order.delivery_partner_id is None:
        problems.append(f"order is {order.status} without a delivery partner")
    if job is not None:
        if expected_job is None:
            problems.append(f"delivery job is {job.status} while order is {order.status}")
        elif job.status != expected_job:
            problems.append(f"delivery job is {job.status}, expected {expected_job} for order {order.status}")
        if job.delivery_partner_id != order.delivery_partner_id:
            problems.append("delivery job and order name different delivery partners")

    for sub_order in sub_orders:
        if sub_order.status == SUB_ORDER_DELIVERED and order.status != ORDER_DELIVERED:
            problems.append(f"sub-order {sub_order.id} is DELIVERED while order is {order.status}")
        if sub_order.status == SUB_ORDER_PICKED_UP and order.status not in (ORDER_PICKED_UP, ORDER_DELIVERED):
            problems.append(f"sub-order {sub_order.id} is PICKED_UP while order is {order.status}")
        if sub_order.status in LIVE_SUB_ORDER_STATUSES and order.status == ORDER_CANCELLED:
            problems.append(f"sub-order {sub_order.id} is still {sub_order.status} on a cancelled order")
        if sub_order.status in (SUB_ORDER_CREATED, SUB_ORDER_ACCEPTED) and order.status in (
            ORDER_PICKED_UP,
            ORDER_DELIVERED,
        ):
            problems.append(f"sub-order {sub_order.id} is still {sub_order.status} while order is {order.status}")
        if (
            sub_order.status == SUB_ORDER_ACCEPTED
            and order.partner_id is not None
            and sub_order.partner_id != order.partner_id
        ):
            problems.append(f"accepted sub-order {sub_order.id} belongs to another partner")
    return problems


def check_order_consistency(db: Session, actor: Actor, order_id: str) -> ConsistencyReport:
    """Compare history records against the canonical order status without merging them."""
    ensure_can_perform(actor, OP_ADMIN_ONLY)
    order = order_store.require_order(db, order_id)
    job = db.scalar(select(DeliveryJob).where(DeliveryJob.order_id == order.id))
    sub_orders = list(db.scalars(select(SubOrder).where(SubOrder.order_id == order.id)).all())
    problems = _consistency_problems(order, job, sub_orders)
    if problems:
        logger.warning("[CONSISTENCY] order_id=%s problems=%s", order.id, problems)
        raise ConsistencyError(f"Order {order.id} history disagrees with its status", problems)
    return ConsistencyReport(order_id=order.id, status=order.status, consistent=True, problems=[])
