"""Delivery job history record."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base

JOB_ASSIGNED = "ASSIGNED"
JOB_PICKING = "PICKING"
JOB_DELIVERED = "DELIVERED"
DELIVERY_JOB_STATUSES = (JOB_ASSIGNED, JOB_PICKING, JOB_DELIVERED)


class DeliveryJob(Base):
    """Ties an order to its delivery actor; mirrors Order.status, never drives it."""

    __tablename__ = "delivery_jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False, unique=True)
    delivery_partner_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(Enum(*DELIVERY_JOB_STATUSES, name="delivery_job_status"), nullable=False, default=JOB_ASSIGNED)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    order: Mapped["Order"] = relationship(back_populates="delivery_job")


def job_status_for_order(order_status: str) -> str | None:
    """Job status that mirrors ``order_status``; None when no job should exist."""
    return {
        "ASSIGNED": JOB_ASSIGNED,
        "PICKED_UP": JOB_PICKING,
        "DELIVERED": JOB_DELIVERED,
    }.get(order_status)
