"""Schema exports."""

from marketplace.schemas.auth import (
    Actor,
    AuthUserResponse,
    OtpIssuedResponse,
    OtpRequest,
    OtpVerifyRequest,
    TokenResponse,
)
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import (
    AcceptSubOrderRequest,
    AssignDeliveryRequest,
    AssignPartnerRequest,
    CustomOrderStatusRead,
    DeliveryStatusUpdate,
    OrderCreate,
    OrderItemIn,
    OrderRead,
    PriceOrderRequest,
    SubOrderItemIn,
    SubOrderRead,
    SubOrderStatusUpdate,
)
from marketplace.schemas.stats import (
    ConsistencyReport,
    DashboardStats,
    DeliveryStats,
    PartnerEarnings,
    PartnerRead,
    PartnerStatusUpdate,
    ShopStatusUpdate,
)

__all__ = [
    "AcceptSubOrderRequest",
    "Actor",
    "ApiResponse",
    "AssignDeliveryRequest",
    "AssignPartnerRequest",
    "AuthUserResponse",
    "ConsistencyReport",
    "CustomOrderStatusRead",
    "DashboardStats",
    "DeliveryStats",
    "DeliveryStatusUpdate",
    "OrderCreate",
    "OrderItemIn",
    "OrderRead",
    "OtpIssuedResponse",
    "OtpRequest",
    "OtpVerifyRequest",
    "PartnerEarnings",
    "PartnerRead",
    "PartnerStatusUpdate",
    "PriceOrderRequest",
    "ShopStatusUpdate",
    "SubOrderItemIn",
    "SubOrderRead",
    "SubOrderStatusUpdate",
    "TokenResponse",
]
