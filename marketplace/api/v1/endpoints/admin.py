"""Admin endpoints: pricing, dispatch, partner review and dashboards."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.core.security import get_current_actor
from marketplace.db.session import get_db
from marketplace.schemas.auth import Actor
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import (
    AssignDeliveryRequest,
    AssignPartnerRequest,
    OrderRead,
    PriceOrderRequest,
    SubOrderRead,
)
from marketplace.schemas.stats import ConsistencyReport, DashboardStats, PartnerRead, PartnerStatusUpdate
from marketplace.services import aggregation_service, order_lifecycle, partner_service
from marketplace.services.notification_service import Notifier, get_notifier

router: APIRouter = APIRouter()


@router.get("/orders", response_model=ApiResponse[list[OrderRead]])
def list_orders(
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[list[OrderRead]]:
    orders = aggregation_service.list_all_orders(db, actor, status)
    return ApiResponse(data=[OrderRead.model_validate(order) for order in orders])


@router.post("/orders/{order_id}/price", response_model=ApiResponse[OrderRead])
def price_order(
    order_id: str,
    payload: PriceOrderRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.price_order(db, actor, order_id, payload.item_total, payload.delivery_fee, notifier)
    return ApiResponse(data=OrderRead.model_validate(order), message="Order priced")


@router.post("/orders/{order_id}/assign-delivery", response_model=ApiResponse[OrderRead])
def assign_delivery(
    order_id: str,
    payload: AssignDeliveryRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.assign_delivery(db, actor, order_id, payload.delivery_partner_id, notifier)
    return ApiResponse(data=OrderRead.model_validate(order), message="Delivery partner assigned")


@router.post("/orders/{order_id}/assign-partner", response_model=ApiResponse[SubOrderRead])
def assign_partner(
    order_id: str,
    payload: AssignPartnerRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[SubOrderRead]:
    sub_order = order_lifecycle.assign_partner(db, actor, order_id, payload.partner_id, payload.items, notifier)
    return ApiResponse(data=SubOrderRead.model_validate(sub_order), message="Partner assigned")


@router.get("/orders/{order_id}/consistency", response_model=ApiResponse[ConsistencyReport])
def order_consistency(
    order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[ConsistencyReport]:
    return ApiResponse(data=aggregation_service.check_order_consistency(db, actor, order_id))


@router.get("/dashboard/stats", response_model=ApiResponse[DashboardStats])
def dashboard_stats(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[DashboardStats]:
    return ApiResponse(data=aggregation_service.get_dashboard_stats(db, actor))


@router.get("/partners", response_model=ApiResponse[list[PartnerRead]])
def list_partners(
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[list[PartnerRead]]:
    partners = partner_service.list_partners(db, actor, status)
    return ApiResponse(data=[PartnerRead.model_validate(partner) for partner in partners])


@router.put("/partners/{partner_id}/status", response_model=ApiResponse[PartnerRead])
def update_partner_status(
    partner_id: str,
    payload: PartnerStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[PartnerRead]:
    partner = partner_service.update_partner_status(db, actor, partner_id, payload.status, payload.rejection_reason)
    return ApiResponse(data=PartnerRead.model_validate(partner), message=f"Partner {partner.status.lower()}")
