"""Customer order endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from marketplace.core.security import get_current_actor
from marketplace.db.session import get_db
from marketplace.schemas.auth import Actor
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import DeliveryStatusUpdate, OrderCreate, OrderRead
from marketplace.services import aggregation_service, order_lifecycle
from marketplace.services.notification_service import Notifier, get_notifier

router: APIRouter = APIRouter()


@router.post("", response_model=ApiResponse[OrderRead], status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.create_order(
        db,
        actor,
        order_type=payload.order_type,
        delivery_address=payload.delivery_address,
        partner_id=payload.partner_id,
        note=payload.note,
        items=payload.items,
        notifier=notifier,
    )
    return ApiResponse(data=OrderRead.model_validate(order), message="Order placed successfully")


@router.get("/my", response_model=ApiResponse[list[OrderRead]])
def my_orders(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)) -> ApiResponse[list[OrderRead]]:
    """Orders owned by the caller in their role, newest first."""
    orders = aggregation_service.get_my_orders(db, actor)
    return ApiResponse(data=[OrderRead.model_validate(order) for order in orders])


@router.get("/{order_id}", response_model=ApiResponse[OrderRead])
def order_details(
    order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.get_order_details(db, actor, order_id)
    return ApiResponse(data=OrderRead.model_validate(order))


@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderRead])
def cancel_order(
    order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.cancel_order(db, actor, order_id, notifier)
    return ApiResponse(data=OrderRead.model_validate(order), message="Order cancelled")


@router.put("/{order_id}/delivery-status", response_model=ApiResponse[OrderRead])
def update_delivery_status(
    order_id: str,
    payload: DeliveryStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    order = order_lifecycle.update_delivery_status(db, actor, order_id, payload.status, notifier)
    return ApiResponse(data=OrderRead.model_validate(order), message=f"Order marked as {order.status}")
