"""Aggregate view schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class DashboardStats(BaseModel):
    total_orders: int
    pending_orders: int
    today_orders: int
    total_partners: int
    pending_partners: int
    active_partners: int
    total_earnings: Decimal
    today: str


class PartnerEarnings(BaseModel):
    partner_id: str
    total_orders: int
    today_orders: int
    delivered_orders: int
    pending_sub_orders: int
    total_earnings: Decimal
    today_earnings: Decimal
    shop_status: str


class DeliveryStats(BaseModel):
    delivery_partner_id: str
    total_deliveries: int
    today_deliveries: int
    active_jobs: int
    total_earnings: Decimal
    today_earnings: Decimal


class ConsistencyReport(BaseModel):
    order_id: str
    status: str
    consistent: bool
    problems: list[str]


class PartnerRead(BaseModel):
    id: str
    user_id: str | None = None
    owner_name: str
    restaurant_name: str
    phone: str
    address: str
    status: str
    is_open: bool
    rejection_reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PartnerProfileSubmit(BaseModel):
    """Shop application filed by the signed-in user; the phone comes from the token."""

    owner_name: str = Field(min_length=1, max_length=255)
    restaurant_name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1)


class PartnerStatusUpdate(BaseModel):
    status: str
    rejection_reason: str | None = None


class ShopStatusUpdate(BaseModel):
    is_open: bool
