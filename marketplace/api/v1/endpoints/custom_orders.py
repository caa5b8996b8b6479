"""Custom order endpoints for the requesting customer."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.security import get_current_actor
from marketplace.db.session import get_db
from marketplace.schemas.auth import Actor
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import CustomOrderStatusRead, OrderRead
from marketplace.services import order_lifecycle
from marketplace.services.notification_service import Notifier, get_notifier

router: APIRouter = APIRouter()


@router.get("/{order_id}/status", response_model=ApiResponse[CustomOrderStatusRead])
def custom_order_status(
    order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApiResponse[CustomOrderStatusRead]:
    return ApiResponse(data=order_lifecycle.get_custom_order_status(db, actor, order_id))


@router.post("/{order_id}/confirm", response_model=ApiResponse[OrderRead])
def confirm_price(
    order_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    notifier: Notifier = Depends(get_notifier),
) -> ApiResponse[OrderRead]:
    """Accept the admin-quoted price and pay."""
    order = order_lifecycle.confirm_price(db, actor, order_id, notifier)
    return ApiResponse(data=OrderRead.model_validate(order), message="Order confirmed")
