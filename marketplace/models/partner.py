"""Partner (shop) ORM model."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.db.base import Base

PARTNER_PENDING = "PENDING"
PARTNER_APPROVED = "APPROVED"
PARTNER_REJECTED = "REJECTED"
PARTNER_SUSPENDED = "SUSPENDED"
PARTNER_STATUSES = (PARTNER_PENDING, PARTNER_APPROVED, PARTNER_REJECTED, PARTNER_SUSPENDED)


class Partner(Base):
    """Shop that fulfills SHOP orders or quotes CUSTOM orders."""

    __tablename__ = "partners"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True, unique=True)
    owner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    restaurant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Enum(*PARTNER_STATUSES, name="partner_status"), nullable=False, default=PARTNER_PENDING, index=True)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
