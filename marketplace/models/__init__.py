"""Application models package."""

from marketplace.models.audit_log import AuditLog
from marketplace.models.delivery_job import DeliveryJob
from marketplace.models.order import Order, OrderItem
from marketplace.models.partner import Partner
from marketplace.models.sub_order import SubOrder
from marketplace.models.user import User

__all__ = ["AuditLog", "DeliveryJob", "Order", "OrderItem", "Partner", "SubOrder", "User"]
