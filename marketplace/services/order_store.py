"""Order and sub-order persistence: lookups, role-scoped queries and guarded transitions."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, joinedload, selectinload

from marketplace.core.errors import InvalidStateError, NotFoundError, StoreError
from marketplace.models import Order, SubOrder
from marketplace.models.sub_order import SUB_ORDER_ACCEPTED
from marketplace.utils.time import utcnow


def require_order(db: Session, order_id: str) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def require_sub_order(db: Session, sub_order_id: str) -> SubOrder:
    sub_order = db.get(SubOrder, sub_order_id)
    if sub_order is None:
        raise NotFoundError("Sub-order not found")
    return sub_order


def _with_identities(statement):
    return statement.options(
        joinedload(Order.customer),
        joinedload(Order.partner),
        joinedload(Order.delivery_partner),
        selectinload(Order.items),
    )


def load_order_with_identities(db: Session, order_id: str) -> Order:
    """Return an order with customer, partner and delivery identities joined."""
    order = db.scalars(_with_identities(select(Order).where(Order.id == order_id))).unique().first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def find_orders(db: Session, *criteria: ColumnElement[bool]) -> list[Order]:
    """Return matching orders newest first, identities joined."""
    statement = _with_identities(select(Order))
    if criteria:
        statement = statement.where(*criteria)
    statement = statement.order_by(Order.created_at.desc(), Order.id.desc())
    return list(db.scalars(statement).unique().all())


def first_accepted_sub_order(db: Session, order_id: str) -> SubOrder | None:
    return db.scalar(
        select(SubOrder)
        .where(SubOrder.order_id == order_id, SubOrder.status == SUB_ORDER_ACCEPTED)
        .order_by(SubOrder.created_at.asc())
        .limit(1)
    )


def _execute_guarded(db: Session, statement):
    try:
        return db.execute(statement)
    except OperationalError as exc:
        db.rollback()
        raise StoreError("Order store is busy, retry the request") from exc


def transition_order(db: Session, order: Order, expected_status: str, new_status: str, **values: Any) -> None:
    """Move ``order`` to ``new_status`` only if the stored status is still ``expected_status``.

    The conditional UPDATE closes the read-modify-write race between two
    callers that both loaded the order in ``expected_status``; the loser gets
    ``InvalidStateError`` and the stored row is left as the winner wrote it.
    """
    result = _execute_guarded(
        db,
        update(Order)
        .where(Order.id == order.id, Order.status == expected_status)
        .values(status=new_status, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidStateError(f"Order is no longer {expected_status}")


def transition_sub_order(db: Session, sub_order: SubOrder, expected_status: str, new_status: str, **values: Any) -> None:
    """Conditional status update for a single sub-order row."""
    result = _execute_guarded(
        db,
        update(SubOrder)
        .where(SubOrder.id == sub_order.id, SubOrder.status == expected_status)
        .values(status=new_status, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvalidStateError(f"Sub-order is no longer {expected_status}")


def order_snapshot(order: Order) -> dict[str, Any]:
    return {
        "status": order.status,
        "payment_status": order.payment_status,
        "partner_id": order.partner_id,
        "delivery_partner_id": order.delivery_partner_id,
        "grand_total": None if order.grand_total is None else str(order.grand_total),
    }


def sub_order_snapshot(sub_order: SubOrder) -> dict[str, Any]:
    return {
        "status": sub_order.status,
        "partner_id": sub_order.partner_id,
        "price": None if sub_order.price is None else str(sub_order.price),
    }
