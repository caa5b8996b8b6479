"""Per-partner sub-order records."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base

SUB_ORDER_CREATED = "CREATED"
SUB_ORDER_ACCEPTED = "ACCEPTED"
SUB_ORDER_REJECTED = "REJECTED"
SUB_ORDER_PREPARING = "PREPARING"
SUB_ORDER_READY = "READY"
SUB_ORDER_PICKED_UP = "PICKED_UP"
SUB_ORDER_DELIVERED = "DELIVERED"
SUB_ORDER_CANCELLED = "CANCELLED"
SUB_ORDER_STATUSES = (
    SUB_ORDER_CREATED,
    SUB_ORDER_ACCEPTED,
    SUB_ORDER_REJECTED,
    SUB_ORDER_PREPARING,
    SUB_ORDER_READY,
    SUB_ORDER_PICKED_UP,
    SUB_ORDER_DELIVERED,
    SUB_ORDER_CANCELLED,
)
LIVE_SUB_ORDER_STATUSES = (SUB_ORDER_CREATED, SUB_ORDER_ACCEPTED, SUB_ORDER_PREPARING, SUB_ORDER_READY)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubOrder(Base):
    """Partner assignment within an order, carrying the partner-quoted price."""

    __tablename__ = "sub_orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    partner_id: Mapped[str] = mapped_column(ForeignKey("partners.id"), nullable=False, index=True)
    items: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(Enum(*SUB_ORDER_STATUSES, name="sub_order_status"), nullable=False, default=SUB_ORDER_CREATED)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    order: Mapped["Order"] = relationship(back_populates="sub_orders")
