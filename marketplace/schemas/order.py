"""Order and sub-order API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class OrderItemIn(BaseModel):
    """Snapshot line supplied by the customer app."""

    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)


class OrderCreate(BaseModel):
    """Create a SHOP or CUSTOM order."""

    order_type: Literal["SHOP", "CUSTOM"] = "SHOP"
    partner_id: str | None = None
    delivery_address: str = ""
    note: str | None = None
    items: list[OrderItemIn] | None = None


class PriceOrderRequest(BaseModel):
    item_total: Decimal
    delivery_fee: Decimal


class AssignDeliveryRequest(BaseModel):
    delivery_partner_id: str = Field(min_length=1)


class DeliveryStatusUpdate(BaseModel):
    status: str


class SubOrderItemIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(default=1, ge=1)


class AssignPartnerRequest(BaseModel):
    partner_id: str = Field(min_length=1)
    items: list[SubOrderItemIn] = Field(default_factory=list)


class AcceptSubOrderRequest(BaseModel):
    price: Decimal


class SubOrderStatusUpdate(BaseModel):
    status: str


class OrderItemRead(BaseModel):
    name: str
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    id: str
    name: str | None = None
    phone: str

    model_config = ConfigDict(from_attributes=True)


class PartnerSummary(BaseModel):
    id: str
    restaurant_name: str
    phone: str
    address: str

    model_config = ConfigDict(from_attributes=True)


class OrderRead(BaseModel):
    """Serialized order with related identities joined."""

    id: str
    order_type: str
    customer_id: str
    partner_id: str | None = None
    delivery_partner_id: str | None = None
    delivery_address: str
    note: str
    items: list[OrderItemRead]
    item_total: Decimal | None = None
    delivery_fee: Decimal | None = None
    grand_total: Decimal | None = None
    payment_status: str
    status: str
    created_at: datetime
    updated_at: datetime
    customer: UserSummary | None = None
    partner: PartnerSummary | None = None
    delivery_partner: UserSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class SubOrderRead(BaseModel):
    id: str
    order_id: str
    partner_id: str
    items: list[dict]
    status: str
    price: Decimal | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomOrderStatusRead(BaseModel):
    """Customer view of a custom order: partner-quoted price and admin total side by side."""

    order_id: str
    status: str
    price: Decimal | None = None
    grand_total: Decimal | None = None
