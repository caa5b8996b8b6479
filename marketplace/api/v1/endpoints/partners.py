"""Partner (shop) endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.core.security import get_current_actor
from marketplace.db.session import get_db
from marketplace.schemas.auth import Actor
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import AcceptSubOrderRequest, SubOrderRead, SubOrderStatusUpdate
from marketplace.schemas.stats import PartnerEarnings, PartnerProfileSubmit, PartnerRead, ShopStatusUpdate
from marketplace.services import aggregation_service, partner_service, sub_order_service
from marketplace.services.notification_service import Notifier, get_notifier

router: APIRouter = APIRouter()


@router.post("/onboard", response_model=ApiResponse[PartnerRead], status_code=status.HTTP_201_CREATED)
def onboard(
    payload: PartnerProfileSubmit,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[PartnerRead]:
    partner = partner_service.submit_partner_profile(
        db, actor, payload.owner_name, payload.restaurant_name, payload.address
    )
    return ApiResponse(data=PartnerRead.model_validate(partner), message="Partner profile submitted successfully")


@router.get("/my-status", response_model=ApiResponse[PartnerRead])
def my_status(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[PartnerRead]:
    return ApiResponse(data=PartnerRead.model_validate(partner_service.get_my_partner_status(db, actor)))


@router.get("/sub-orders", response_model=ApiResponse[list[SubOrderRead]])
def my_sub_orders(
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[list[SubOrderRead]]:
    sub_orders = sub_order_service.list_my_sub_orders(db, actor, status)
    return ApiResponse(data=[SubOrderRead.model_validate(sub_order) for sub_order in sub_orders])


@router.post("/sub-orders/{sub_order_id}/accept", response_model=ApiResponse[SubOrderRead])
def accept_sub_order(
    sub_order_id: str,
    payload: AcceptSubOrderRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[SubOrderRead]:
    sub_order = sub_order_service.accept_sub_order(db, actor, sub_order_id, payload.price, notifier)
    return ApiResponse(data=SubOrderRead.model_validate(sub_order), message="Order accepted")


@router.post("/sub-orders/{sub_order_id}/reject", response_model=ApiResponse[SubOrderRead])
def reject_sub_order(
    sub_order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[SubOrderRead]:
    sub_order = sub_order_service.reject_sub_order(db, actor, sub_order_id, notifier)
    return ApiResponse(data=SubOrderRead.model_validate(sub_order), message="Order rejected")


@router.put("/sub-orders/{sub_order_id}/status", response_model=ApiResponse[SubOrderRead])
def update_sub_order_status(
    sub_order_id: str,
    payload: SubOrderStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[SubOrderRead]:
    sub_order = sub_order_service.update_sub_order_status(db, actor, sub_order_id, payload.status, notifier)
    return ApiResponse(data=SubOrderRead.model_validate(sub_order))


@router.put("/shop-status", response_model=ApiResponse[PartnerRead])
def update_shop_status(
    payload: ShopStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[PartnerRead]:
    partner = partner_service.update_shop_status(db, actor, payload.is_open)
    message = "Shop is now open" if partner.is_open else "Shop is now closed"
    return ApiResponse(data=PartnerRead.model_validate(partner), message=message)


@router.get("/stats", response_model=ApiResponse[PartnerEarnings])
def partner_stats(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[PartnerEarnings]:
    return ApiResponse(data=aggregation_service.get_partner_earnings(db, actor))
