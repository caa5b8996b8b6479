"""Delivery actor endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.security import get_current_actor
from marketplace.db.session import get_db
from marketplace.schemas.auth import Actor
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import OrderRead
from marketplace.schemas.stats import DeliveryStats
from marketplace.services import aggregation_service, order_lifecycle
from marketplace.services.notification_service import Notifier, get_notifier

router: APIRouter = APIRouter()


@router.get("/available-jobs", response_model=ApiResponse[list[OrderRead]])
def available_jobs(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[list[OrderRead]]:
    orders = aggregation_service.list_available_jobs(db, actor)
    return ApiResponse(data=[OrderRead.model_validate(order) for order in orders])


@router.post("/jobs/{order_id}/accept", response_model=ApiResponse[OrderRead])
def accept_job(
    order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.accept_delivery_job(db, actor, order_id, notifier)
    return ApiResponse(data=OrderRead.model_validate(order), message="Delivery job accepted")


@router.get("/my-orders", response_model=ApiResponse[list[OrderRead]])
def my_deliveries(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[list[OrderRead]]:
    orders = aggregation_service.get_my_orders(db, actor)
    return ApiResponse(data=[OrderRead.model_validate(order) for order in orders])


@router.get("/stats", response_model=ApiResponse[DeliveryStats])
def delivery_stats(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[DeliveryStats]:
    return ApiResponse(data=aggregation_service.get_delivery_stats(db, actor))
