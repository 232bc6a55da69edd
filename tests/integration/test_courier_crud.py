import pytest

from core.exceptions import NotFound, ValidationError
from models.couriers import Courier
from models.enums import EventKind
from schemas.courier_schemas import CreateCourierRequest, UpdateCourierRequest
from schemas.order_schemas import OnlineOrderDraft
from services.courier_service import CourierService
from tests.helpers import online_payload


def test_create_courier(session):
    request = CreateCourierRequest(username="  kiran ", password="DeliverMe789", mobile_no="9876512345")

    courier = CourierService.create_courier(session, request)

    assert courier.id is not None
    assert courier.name == "kiran"
    assert courier.mobile_no == "+919876512345"
    assert courier.hashed_password != "DeliverMe789"

    db_courier = session.query(Courier).filter(Courier.name == "kiran").first()
    assert db_courier is not None


def test_create_courier_duplicate_name(session, courier):
    request = CreateCourierRequest(username="ravi", password="DeliverMe789", mobile_no="9876512345")

    with pytest.raises(ValidationError):
        CourierService.create_courier(session, request)


def test_resolve_unknown_courier(session):
    with pytest.raises(NotFound):
        CourierService.resolve(session, 42)


def test_update_courier(session, courier):
    updated = CourierService.update_courier(session, courier.id, UpdateCourierRequest(mobile_no="+919876598765"))

    assert updated.mobile_no == "+919876598765"
    assert updated.name == "ravi"


def test_delete_courier_unassigns_orders(session, order_service, brokers, courier):
    order = order_service.create_order(OnlineOrderDraft(**online_payload()))
    order_service.approve(order.order_id)
    order_service.assign_courier(order.order_id, courier.id)
    events = []
    brokers.online.subscribe(events.append)

    affected = CourierService.delete_courier(session, courier.id)
    order_service.republish(affected)

    assert affected == [order.order_id]
    refreshed = order_service.get_order(order.order_id)
    assert refreshed.deliveryman is None
    assert [event.kind for event in events] == [EventKind.ORDER_UPDATE]
    assert events[0].order.deliveryman is None
