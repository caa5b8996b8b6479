"""Order models for shop and custom delivery orders."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base

ORDER_TYPE_SHOP = "SHOP"
ORDER_TYPE_CUSTOM = "CUSTOM"
ORDER_TYPES = (ORDER_TYPE_SHOP, ORDER_TYPE_CUSTOM)

PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"
PAYMENT_FAILED = "FAILED"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)

ORDER_CREATED = "CREATED"
ORDER_PRICED = "PRICED"
ORDER_CONFIRMED = "CONFIRMED"
ORDER_ASSIGNED = "ASSIGNED"
ORDER_PICKED_UP = "PICKED_UP"
ORDER_DELIVERED = "DELIVERED"
ORDER_CANCELLED = "CANCELLED"
ORDER_STATUSES = (
    ORDER_CREATED,
    ORDER_PRICED,
    ORDER_CONFIRMED,
    ORDER_ASSIGNED,
    ORDER_PICKED_UP,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """Customer delivery order, itemized (SHOP) or free-text (CUSTOM)."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    order_type: Mapped[str] = mapped_column(Enum(*ORDER_TYPES, name="order_type"), nullable=False)
    customer_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    partner_id: Mapped[str | None] = mapped_column(ForeignKey("partners.id"), nullable=True)
    delivery_partner_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    item_total: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    delivery_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    grand_total: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_status: Mapped[str] = mapped_column(Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default=PAYMENT_PENDING)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=ORDER_CREATED)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    customer: Mapped["User"] = relationship(foreign_keys=[customer_id])
    partner: Mapped["Partner | None"] = relationship(foreign_keys=[partner_id])
    delivery_partner: Mapped["User | None"] = relationship(foreign_keys=[delivery_partner_id])
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.position"
    )
    sub_orders: Mapped[list["SubOrder"]] = relationship(back_populates="order", order_by="SubOrder.created_at")
    delivery_job: Mapped["DeliveryJob | None"] = relationship(back_populates="order", uselist=False)

    __table_args__ = (
        Index("ix_orders_customer_created", "customer_id", "created_at"),
        Index("ix_orders_partner_created", "partner_id", "created_at"),
        Index("ix_orders_delivery_created", "delivery_partner_id", "created_at"),
        Index("ix_orders_status_created", "status", "created_at"),
    )


class OrderItem(Base):
    """Snapshot of an order line, decoupled from the live menu."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")
