"""API v1 router composition."""

from fastapi import APIRouter

from marketplace.api.v1.endpoints import admin, auth, custom_orders, delivery, orders, partners

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(custom_orders.router, prefix="/custom-orders", tags=["custom-orders"])
api_router.include_router(delivery.router, prefix="/delivery", tags=["delivery"])
api_router.include_router(partners.router, prefix="/partners", tags=["partners"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
