"""User ORM model."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.db.base import Base

ROLE_CUSTOMER = "CUSTOMER"
ROLE_PARTNER = "PARTNER"
ROLE_DELIVERY = "DELIVERY"
ROLE_ADMIN = "ADMIN"
USER_ROLES = (ROLE_CUSTOMER, ROLE_PARTNER, ROLE_DELIVERY, ROLE_ADMIN)


class User(Base):
    """Phone-identified account for every marketplace actor."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(Enum(*USER_ROLES, name="user_role"), nullable=False, default=ROLE_CUSTOMER)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
