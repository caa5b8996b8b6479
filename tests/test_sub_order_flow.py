from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from marketplace.core.errors import (
    ConsistencyError,
    InputValidationError,
    InvalidStateError,
    NotAuthorizedError,
    PartnerNotOnboardedError,
)
from marketplace.db.base import Base
from marketplace.models import Order, Partner, SubOrder, User
from marketplace.schemas.auth import Actor
from marketplace.schemas.order import SubOrderItemIn
from marketplace.services import aggregation_service, order_lifecycle, sub_order_service

CUSTOMER = Actor(id="C1", role="CUSTOMER")
ADMIN = Actor(id="A1", role="ADMIN")
BAKER = Actor(id="U-P1", role="PARTNER")
CAFE = Actor(id="U-P2", role="PARTNER", partner_id="P2")


def _build_session_local() -> sessionmaker:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def _seed(session) -> str:
    session.add_all(
        [
            User(id="C1", phone="+911000000001", role="CUSTOMER"),
            User(id="A1", phone="+911000000009", role="ADMIN"),
            User(id="U-P1", phone="+911000000005", role="PARTNER"),
            User(id="U-P2", phone="+911000000006", role="PARTNER"),
            Partner(id="P1", user_id="U-P1", owner_name="A", restaurant_name="Lake Bakery", phone="+911000000005", status="APPROVED"),
            Partner(id="P2", user_id="U-P2", owner_name="B", restaurant_name="Hill Cafe", phone="+911000000006", status="APPROVED"),
            Partner(id="P3", owner_name="C", restaurant_name="New Shop", phone="+911000000007", status="PENDING"),
        ]
    )
    session.commit()
    order = order_lifecycle.create_order(
        session, CUSTOMER, order_type="CUSTOM", delivery_address="12 Lake Rd", note="birthday cake, 1kg"
    )
    return order.id


def _assign(session, order_id: str, partner_id: str = "P1") -> SubOrder:
    return order_lifecycle.assign_partner(
        session, ADMIN, order_id, partner_id, [SubOrderItemIn(name="Cake", quantity=1)]
    )


def test_assign_partner_opens_sub_order_for_custom_order() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order = _assign(session, order_id)

        assert sub_order.status == "CREATED"
        assert sub_order.items == [{"name": "Cake", "quantity": 1}]
        order = session.get(Order, order_id)
        assert order.partner_id == "P1"
        assert order.status == "CREATED"

        with pytest.raises(InvalidStateError):
            _assign(session, order_id, "P2")
        with pytest.raises(InvalidStateError):
            order_lifecycle.assign_partner(session, ADMIN, order_id, "P3")
        with pytest.raises(NotAuthorizedError):
            order_lifecycle.assign_partner(session, CUSTOMER, order_id, "P2")


def test_reject_then_accept_is_invalid_state() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id

        rejected = sub_order_service.reject_sub_order(session, BAKER, sub_order_id)
        assert rejected.status == "REJECTED"

        with pytest.raises(InvalidStateError):
            sub_order_service.accept_sub_order(session, BAKER, sub_order_id, 500)

    with session_local() as session:
        stored = session.get(SubOrder, sub_order_id)
        assert stored.status == "REJECTED"
        assert stored.price is None


def test_rejected_custom_order_can_be_rerouted() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        first = _assign(session, order_id)
        sub_order_service.reject_sub_order(session, BAKER, first.id)

        second = _assign(session, order_id, "P2")
        assert second.partner_id == "P2"
        assert session.get(Order, order_id).partner_id == "P2"


def test_accept_records_quote_and_custom_status_reports_it() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id

        with pytest.raises(InputValidationError):
            sub_order_service.accept_sub_order(session, BAKER, sub_order_id, 0)
        with pytest.raises(NotAuthorizedError):
            sub_order_service.accept_sub_order(session, CAFE, sub_order_id, 450)

        accepted = sub_order_service.accept_sub_order(session, BAKER, sub_order_id, "450")
        assert accepted.status == "ACCEPTED"
        assert accepted.price == Decimal("450.00")

        status = order_lifecycle.get_custom_order_status(session, CUSTOMER, order_id)
        assert status.status == "CREATED"
        assert status.price == Decimal("450.00")
        assert status.grand_total is None

        order_lifecycle.price_order(session, ADMIN, order_id, 450, 49)
        status = order_lifecycle.get_custom_order_status(session, CUSTOMER, order_id)
        assert status.status == "PRICED"
        assert status.grand_total == Decimal("499.00")

        with pytest.raises(NotAuthorizedError):
            order_lifecycle.get_custom_order_status(session, ADMIN, order_id)


def test_preparation_progress_follows_accepted_sub_order() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id

        with pytest.raises(InvalidStateError):
            sub_order_service.update_sub_order_status(session, BAKER, sub_order_id, "PREPARING")

        sub_order_service.accept_sub_order(session, BAKER, sub_order_id, 300)
        with pytest.raises(InvalidStateError):
            sub_order_service.update_sub_order_status(session, BAKER, sub_order_id, "READY")
        with pytest.raises(InputValidationError):
            sub_order_service.update_sub_order_status(session, BAKER, sub_order_id, "DELIVERED")

        assert sub_order_service.update_sub_order_status(session, BAKER, sub_order_id, "PREPARING").status == "PREPARING"
        assert sub_order_service.update_sub_order_status(session, BAKER, sub_order_id, "READY").status == "READY"


def test_list_my_sub_orders_by_partner() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        _assign(session, order_id)

        assert len(sub_order_service.list_my_sub_orders(session, BAKER)) == 1
        assert sub_order_service.list_my_sub_orders(session, BAKER, "ACCEPTED") == []
        assert sub_order_service.list_my_sub_orders(session, CAFE) == []
        with pytest.raises(PartnerNotOnboardedError):
            sub_order_service.list_my_sub_orders(session, Actor(id="C1", role="PARTNER"))

        customer_with_shop_phone = Actor(id="C1", role="CUSTOMER", phone="+911000000005")
        with pytest.raises(NotAuthorizedError) as exc_info:
            sub_order_service.list_my_sub_orders(session, customer_with_shop_phone)
        assert exc_info.value.reason == "WRONG_ROLE"


def test_pickup_and_delivery_mirror_onto_sub_orders() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        session.add(User(id="D1", phone="+911000000003", role="DELIVERY"))
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id
        sub_order_service.accept_sub_order(session, BAKER, sub_order_id, 300)
        order_lifecycle.price_order(session, ADMIN, order_id, 300, 49)
        order_lifecycle.confirm_price(session, CUSTOMER, order_id)
        order_lifecycle.assign_delivery(session, ADMIN, order_id, "D1")

        courier = Actor(id="D1", role="DELIVERY")
        order_lifecycle.update_delivery_status(session, courier, order_id, "PICKED_UP")
        assert session.scalar(select(SubOrder.status).where(SubOrder.id == sub_order_id)) == "PICKED_UP"
        order_lifecycle.update_delivery_status(session, courier, order_id, "DELIVERED")
        assert session.scalar(select(SubOrder.status).where(SubOrder.id == sub_order_id)) == "DELIVERED"


def _deliver(session, order_id: str) -> None:
    session.add(User(id="D1", phone="+911000000003", role="DELIVERY"))
    session.commit()
    order_lifecycle.price_order(session, ADMIN, order_id, 300, 49)
    order_lifecycle.confirm_price(session, CUSTOMER, order_id)
    order_lifecycle.assign_delivery(session, ADMIN, order_id, "D1")
    courier = Actor(id="D1", role="DELIVERY")
    order_lifecycle.update_delivery_status(session, courier, order_id, "PICKED_UP")
    order_lifecycle.update_delivery_status(session, courier, order_id, "DELIVERED")


def test_sub_order_cannot_change_after_order_is_delivered() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id
        _deliver(session, order_id)

        with pytest.raises(InvalidStateError):
            sub_order_service.accept_sub_order(session, BAKER, sub_order_id, 300)
        with pytest.raises(InvalidStateError):
            sub_order_service.reject_sub_order(session, BAKER, sub_order_id)

    with session_local() as session:
        stored = session.get(SubOrder, sub_order_id)
        assert stored.status == "CREATED"
        assert stored.price is None


def test_unanswered_sub_order_on_delivered_order_is_reported() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id
        _deliver(session, order_id)

        with pytest.raises(ConsistencyError) as exc_info:
            aggregation_service.check_order_consistency(session, ADMIN, order_id)
        assert f"sub-order {sub_order_id} is still CREATED while order is DELIVERED" in exc_info.value.problems


def test_sub_order_cannot_progress_on_cancelled_order() -> None:
    session_local = _build_session_local()

    with session_local() as session:
        order_id = _seed(session)
        sub_order_id = _assign(session, order_id).id
        order_lifecycle.cancel_order(session, CUSTOMER, order_id)

        with pytest.raises(InvalidStateError):
            sub_order_service.update_sub_order_status(session, BAKER, sub_order_id, "PREPARING")
        assert session.scalar(select(SubOrder.status).where(SubOrder.id == sub_order_id)) == "CANCELLED"
