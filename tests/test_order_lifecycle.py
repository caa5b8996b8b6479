from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from marketplace.core.errors import (
    ERROR_INVALID_STATE,
    ERROR_NOT_FOUND,
    ERROR_UNAUTHORIZED,
    ERROR_VALIDATION,
    InputValidationError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
)
from marketplace.db.base import Base
from marketplace.models import AuditLog, DeliveryJob, Order, Partner, SubOrder, User
from marketplace.schemas.auth import Actor
from marketplace.schemas.order import OrderItemIn
from marketplace.services import order_lifecycle


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def publish(self, channel: str, event: str, payload: dict) -> None:
        self.events.append((channel, event, payload))


def _build_session_local() -> sessionmaker:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def _seed(session) -> None:
    session.add_all(
        [
            User(id="C1", phone="+911000000001", name="Asha", role="CUSTOMER"),
            User(id="C2", phone="+911000000002", name="Ravi", role="CUSTOMER"),
            User(id="A1", phone="+911000000009", name="Admin", role="ADMIN"),
            User(id="D1", phone="+911000000003", name="Dev", role="DELIVERY"),
            User(id="D2", phone="+911000000004", name="Dina", role="DELIVERY"),
            User(id="U-P1", phone="+911000000005", name="Baker", role="PARTNER"),
        ]
    )
    session.add(
        Partner(
            id="P1",
            user_id="U-P1",
            owner_name="Baker",
            restaurant_name="Lake Bakery",
            phone="+911000000005",
            address="1 Lake Rd",
            status="APPROVED",
            is_open=True,
        )
    )
    session.commit()


CUSTOMER = Actor(id="C1", role="CUSTOMER")
OTHER_CUSTOMER = Actor(id="C2", role="CUSTOMER")
ADMIN = Actor(id="A1", role="ADMIN")
COURIER = Actor(id="D1", role="DELIVERY")
OTHER_COURIER = Actor(id="D2", role="DELIVERY")


def _custom_order(session) -> Order:
    return order_lifecycle.create_order(
        session,
        CUSTOMER,
        order_type="CUSTOM",
        delivery_address="12 Lake Rd",
        note="2 idli, 1 vada",
    )


def _stored_status(session_local, order_id: str) -> str:
    with session_local() as session:
        return session.get(Order, order_id).status


def test_custom_order_happy_path_reaches_delivered() -> None:
    session_local = _build_session_local()
    notifier = RecordingNotifier()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        assert order.status == "CREATED"
        assert order.payment_status == "PENDING"
        assert order.grand_total is None

        order = order_lifecycle.price_order(session, ADMIN, order.id, 150, 30, notifier)
        assert order.status == "PRICED"
        assert order.grand_total == Decimal("180.00")

        order = order_lifecycle.confirm_price(session, CUSTOMER, order.id, notifier)
        assert order.status == "CONFIRMED"
        assert order.payment_status == "PAID"

        order = order_lifecycle.assign_delivery(session, ADMIN, order.id, "D1", notifier)
        assert order.status == "ASSIGNED"
        assert order.delivery_partner_id == "D1"
        assert order.delivery_partner.phone == "+911000000003"

        order = order_lifecycle.update_delivery_status(session, COURIER, order.id, "PICKED_UP", notifier)
        assert order.status == "PICKED_UP"
        order = order_lifecycle.update_delivery_status(session, COURIER, order.id, "DELIVERED", notifier)
        assert order.status == "DELIVERED"

        job = session.scalar(select(DeliveryJob).where(DeliveryJob.order_id == order.id))
        assert job is not None
        assert job.status == "DELIVERED"
        actions = session.scalars(
            select(AuditLog.action_type).where(AuditLog.order_id == order.id).order_by(AuditLog.id)
        ).all()
        assert actions == [
            "ORDER_CREATED",
            "ORDER_PRICED",
            "ORDER_CONFIRMED",
            "DELIVERY_ASSIGNED",
            "ORDER_PICKED_UP",
            "ORDER_DELIVERED",
        ]

    assert ("customer:C1", "order:status", {"order_id": order.id, "status": "DELIVERED"}) in notifier.events
    assert ("delivery:D1", "order:new", {"order_id": order.id}) in notifier.events


def test_shop_order_is_confirmed_and_paid_at_creation() -> None:
    session_local = _build_session_local()
    notifier = RecordingNotifier()

    with session_local() as session:
        _seed(session)
        order = order_lifecycle.create_order(
            session,
            CUSTOMER,
            order_type="SHOP",
            partner_id="P1",
            delivery_address="12 Lake Rd",
            items=[OrderItemIn(name="Croissant", quantity=2, price=Decimal("60"))],
            notifier=notifier,
        )
        assert order.status == "CONFIRMED"
        assert order.payment_status == "PAID"
        assert order.item_total == Decimal("120.00")
        assert order.delivery_fee == Decimal("49.00")
        assert order.grand_total == Decimal("169.00")
        assert [(item.name, item.quantity) for item in order.items] == [("Croissant", 2)]
        assert order.partner.restaurant_name == "Lake Bakery"

        sub_order = session.scalar(select(SubOrder).where(SubOrder.order_id == order.id))
        assert sub_order.partner_id == "P1"
        assert sub_order.status == "CREATED"

        with pytest.raises(InvalidStateError):
            order_lifecycle.price_order(session, ADMIN, order.id, 10, 5)

    assert _stored_status(session_local, order.id) == "CONFIRMED"
    assert notifier.events[0][0] == "partner:P1"


def test_shop_order_rejects_closed_or_unknown_partner() -> None:
    session_local = _build_session_local()
    items = [OrderItemIn(name="Croissant", quantity=1, price=Decimal("60"))]

    with session_local() as session:
        _seed(session)
        with pytest.raises(NotFoundError):
            order_lifecycle.create_order(
                session, CUSTOMER, order_type="SHOP", partner_id="missing", delivery_address="12 Lake Rd", items=items
            )

        session.get(Partner, "P1").is_open = False
        session.commit()
        with pytest.raises(InvalidStateError):
            order_lifecycle.create_order(
                session, CUSTOMER, order_type="SHOP", partner_id="P1", delivery_address="12 Lake Rd", items=items
            )

        assert session.scalars(select(Order)).all() == []


def test_create_order_validation_failures() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        with pytest.raises(InputValidationError) as exc_info:
            order_lifecycle.create_order(session, CUSTOMER, order_type="CUSTOM", delivery_address="  ", note="tea")
        assert exc_info.value.kind == ERROR_VALIDATION

        with pytest.raises(InputValidationError):
            order_lifecycle.create_order(session, CUSTOMER, order_type="CUSTOM", delivery_address="12 Lake Rd")

        with pytest.raises(InputValidationError):
            order_lifecycle.create_order(session, CUSTOMER, order_type="SHOP", partner_id="P1", delivery_address="12 Lake Rd")

        with pytest.raises(NotAuthorizedError) as exc_info:
            order_lifecycle.create_order(session, ADMIN, order_type="CUSTOM", delivery_address="12 Lake Rd", note="tea")
        assert exc_info.value.kind == ERROR_UNAUTHORIZED


def test_assign_delivery_from_created_is_invalid_state() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)

        with pytest.raises(InvalidStateError) as exc_info:
            order_lifecycle.assign_delivery(session, ADMIN, order.id, "D1")
        assert exc_info.value.kind == ERROR_INVALID_STATE

    assert _stored_status(session_local, order.id) == "CREATED"


def test_assign_delivery_requires_existing_courier() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        order_lifecycle.price_order(session, ADMIN, order.id, 100, 20)
        order_lifecycle.confirm_price(session, CUSTOMER, order.id)

        with pytest.raises(NotFoundError) as exc_info:
            order_lifecycle.assign_delivery(session, ADMIN, order.id, "C2")
        assert exc_info.value.kind == ERROR_NOT_FOUND

    assert _stored_status(session_local, order.id) == "CONFIRMED"


def test_price_order_rejects_non_numeric_amounts() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        with pytest.raises(InputValidationError):
            order_lifecycle.price_order(session, ADMIN, order.id, "lots", 30)
        with pytest.raises(InputValidationError):
            order_lifecycle.price_order(session, ADMIN, order.id, 150, -1)
        with pytest.raises(InputValidationError):
            order_lifecycle.price_order(session, ADMIN, order.id, "1e30", 30)
        with pytest.raises(InputValidationError):
            order_lifecycle.price_order(session, ADMIN, order.id, "99999999.99", 30)
        with pytest.raises(NotAuthorizedError):
            order_lifecycle.price_order(session, CUSTOMER, order.id, 150, 30)

    assert _stored_status(session_local, order.id) == "CREATED"


def test_cancel_from_assigned_is_invalid_state() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        order_lifecycle.price_order(session, ADMIN, order.id, 150, 30)
        order_lifecycle.confirm_price(session, CUSTOMER, order.id)
        order_lifecycle.assign_delivery(session, ADMIN, order.id, "D1")

        with pytest.raises(InvalidStateError):
            order_lifecycle.cancel_order(session, CUSTOMER, order.id)

    assert _stored_status(session_local, order.id) == "ASSIGNED"


def test_cancel_is_not_idempotent() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = order_lifecycle.create_order(
            session,
            CUSTOMER,
            order_type="SHOP",
            partner_id="P1",
            delivery_address="12 Lake Rd",
            items=[OrderItemIn(name="Croissant", quantity=1, price=Decimal("60"))],
        )

        cancelled = order_lifecycle.cancel_order(session, CUSTOMER, order.id)
        assert cancelled.status == "CANCELLED"
        sub_order = session.scalar(select(SubOrder).where(SubOrder.order_id == order.id))
        assert sub_order.status == "CANCELLED"

        with pytest.raises(InvalidStateError):
            order_lifecycle.cancel_order(session, CUSTOMER, order.id)

    assert _stored_status(session_local, order.id) == "CANCELLED"


def test_confirm_price_by_another_customer_is_unauthorized() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        order_lifecycle.price_order(session, ADMIN, order.id, 150, 30)

        with pytest.raises(NotAuthorizedError) as exc_info:
            order_lifecycle.confirm_price(session, OTHER_CUSTOMER, order.id)
        assert exc_info.value.kind == ERROR_UNAUTHORIZED

    assert _stored_status(session_local, order.id) == "PRICED"


def test_confirm_price_before_pricing_is_invalid_state() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        with pytest.raises(InvalidStateError):
            order_lifecycle.confirm_price(session, CUSTOMER, order.id)

    assert _stored_status(session_local, order.id) == "CREATED"


def test_delivery_status_follows_assignment_and_order() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = _custom_order(session)
        order_lifecycle.price_order(session, ADMIN, order.id, 150, 30)
        order_lifecycle.confirm_price(session, CUSTOMER, order.id)
        order_lifecycle.assign_delivery(session, ADMIN, order.id, "D1")

        with pytest.raises(NotAuthorizedError):
            order_lifecycle.update_delivery_status(session, OTHER_COURIER, order.id, "PICKED_UP")
        with pytest.raises(InvalidStateError):
            order_lifecycle.update_delivery_status(session, COURIER, order.id, "DELIVERED")
        with pytest.raises(InputValidationError):
            order_lifecycle.update_delivery_status(session, COURIER, order.id, "CONFIRMED")

    assert _stored_status(session_local, order.id) == "ASSIGNED"


def test_delivery_actor_can_accept_unassigned_job_once() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = order_lifecycle.create_order(
            session,
            CUSTOMER,
            order_type="SHOP",
            partner_id="P1",
            delivery_address="12 Lake Rd",
            items=[OrderItemIn(name="Croissant", quantity=1, price=Decimal("60"))],
        )

        accepted = order_lifecycle.accept_delivery_job(session, COURIER, order.id)
        assert accepted.status == "ASSIGNED"
        assert accepted.delivery_partner_id == "D1"

        with pytest.raises(InvalidStateError):
            order_lifecycle.accept_delivery_job(session, OTHER_COURIER, order.id)

    with session_local() as session:
        assert session.get(Order, order.id).delivery_partner_id == "D1"


def test_order_details_visibility() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        _seed(session)
        order = order_lifecycle.create_order(
            session,
            CUSTOMER,
            order_type="SHOP",
            partner_id="P1",
            delivery_address="12 Lake Rd",
            items=[OrderItemIn(name="Croissant", quantity=1, price=Decimal("60"))],
        )

        assert order_lifecycle.get_order_details(session, CUSTOMER, order.id).id == order.id
        assert order_lifecycle.get_order_details(session, ADMIN, order.id).id == order.id
        partner_actor = Actor(id="U-P1", role="PARTNER")
        assert order_lifecycle.get_order_details(session, partner_actor, order.id).customer.name == "Asha"

        with pytest.raises(NotAuthorizedError):
            order_lifecycle.get_order_details(session, OTHER_CUSTOMER, order.id)
        with pytest.raises(NotAuthorizedError):
            order_lifecycle.get_order_details(session, COURIER, order.id)
        with pytest.raises(NotFoundError):
            order_lifecycle.get_order_details(session, ADMIN, "missing")
