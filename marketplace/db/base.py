"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from marketplace.models import audit_log as _audit_log  # noqa: E402,F401
from marketplace.models import delivery_job as _delivery_job  # noqa: E402,F401
from marketplace.models import order as _order  # noqa: E402,F401
from marketplace.models import partner as _partner  # noqa: E402,F401
from marketplace.models import sub_order as _sub_order  # noqa: E402,F401
from marketplace.models import user as _user  # noqa: E402,F401
