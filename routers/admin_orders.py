from typing import List, Optional

from fastapi import APIRouter, Query, Request

from middleware.rate_limiter import limiter
from models.enums import Channel, PaymentStatus
from schemas.order_schemas import (AssignCourierRequest, EditItemsRequest, OrderEnvelope, OrderPage,
                                   OrderResponse, OrderStatusUpdate, PaymentStatusUpdate)
from services import predicates
from services.stream_session import event_stream_response
from utils.deps import (brokers_dependency, order_service_dependency, snapshot_dependency,
                        staff_dependency)
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/admin/orders",
    tags=["admin orders"]
)


def _envelope(message: str, order: OrderResponse) -> dict:
    return {"message": message, "order": order}


# Dine-in board

@router.get("", response_model=List[OrderResponse])
async def get_all_orders(staff: staff_dependency, snapshots: snapshot_dependency):
    """Every dine order ever placed, newest first."""
    return snapshots.all_orders(Channel.DINE)


@router.get("/today", response_model=List[OrderResponse])
async def get_todays_orders(staff: staff_dependency, snapshots: snapshot_dependency):
    """Every dine order placed today (business timezone), newest first."""
    return snapshots.todays_orders(Channel.DINE)


@router.get("/approved", response_model=List[OrderResponse])
async def get_approved_orders(staff: staff_dependency, snapshots: snapshot_dependency):
    """Kitchen view: today's approved dine orders that are still unpaid."""
    return snapshots.kitchen_approved()


@router.get("/month/{month}", response_model=List[OrderResponse])
async def get_orders_for_month(month: str, staff: staff_dependency, snapshots: snapshot_dependency):
    return snapshots.paid_completed_for_month(Channel.DINE, month)


@router.get("/date/{day}", response_model=List[OrderResponse])
async def get_orders_for_date(day: str, staff: staff_dependency, snapshots: snapshot_dependency):
    return snapshots.paid_completed_for_date(Channel.DINE, day)


@router.get("/current-month", response_model=OrderPage)
async def get_current_month_orders(staff: staff_dependency, snapshots: snapshot_dependency,
                                   page: int = Query(1), limit: Optional[int] = Query(None)):
    return snapshots.paid_completed_current_month(Channel.DINE, page=page, limit=limit)


@router.patch("/{order_id}/status", response_model=OrderEnvelope)
@limiter.limit("60/minute")
async def update_order_status(request: Request, order_id: str, body: OrderStatusUpdate,
                              staff: staff_dependency, service: order_service_dependency):
    order = service.set_order_status(order_id, body.order_status, Channel.DINE)
    return _envelope("Order status updated successfully", order)


@router.patch("/{order_id}/payment", response_model=OrderEnvelope)
async def update_payment_status(order_id: str, staff: staff_dependency, service: order_service_dependency,
                                body: Optional[PaymentStatusUpdate] = None):
    """
    Settle the payment of a dine order. Without a body the order is marked
    paid, which is what the cashier screen sends.
    """
    target = body.payment_status if body else PaymentStatus.PAID
    order = service.set_payment_status(order_id, target, Channel.DINE)
    return _envelope("Payment status updated successfully", order)


@router.patch("/{order_id}/edit", response_model=OrderEnvelope)
async def edit_order_items(order_id: str, body: EditItemsRequest, staff: staff_dependency,
                           service: order_service_dependency):
    order = service.edit_items(order_id, body.newItems, Channel.DINE)
    return _envelope("Order updated successfully", order)


@router.patch("/{order_id}/approve", response_model=OrderEnvelope)
async def approve_order(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order approved", service.approve(order_id, Channel.DINE))


@router.patch("/{order_id}/complete", response_model=OrderEnvelope)
async def complete_order(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order completed", service.complete(order_id, Channel.DINE))


@router.patch("/{order_id}/mark-paid", response_model=OrderEnvelope)
async def mark_order_paid(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order marked as paid", service.mark_paid(order_id, Channel.DINE))


@router.patch("/{order_id}/mark-failed", response_model=OrderEnvelope)
async def mark_order_failed(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order payment marked as failed", service.mark_failed(order_id, Channel.DINE))


@router.get("/stream")
async def stream_orders(request: Request, brokers: brokers_dependency):
    """Admin board: every dine order event."""
    return event_stream_response(request, brokers.dine, predicates.channel_orders(Channel.DINE),
                                 label="admin:dine")


@router.get("/approved/stream")
async def stream_approved_orders(request: Request, brokers: brokers_dependency):
    """Kitchen board: approved orders, plus completions so cards can leave the board."""
    return event_stream_response(request, brokers.dine, predicates.kitchen_approved(),
                                 label="kitchen:dine")


# Online (delivery) board

@router.get("/online/today", response_model=List[OrderResponse])
async def get_todays_online_orders(staff: staff_dependency, snapshots: snapshot_dependency):
    return snapshots.todays_orders(Channel.ONLINE)


@router.get("/online/approved", response_model=List[OrderResponse])
async def get_courier_orders(staff: staff_dependency, snapshots: snapshot_dependency,
                             deliverymanId: int = Query(...)):
    """Courier dashboard: today's approved orders assigned to one courier."""
    return snapshots.courier_orders(deliverymanId)


@router.get("/online/approved/cook", response_model=List[OrderResponse])
async def get_unassigned_online_orders(staff: staff_dependency, snapshots: snapshot_dependency):
    """Dispatch pool: today's approved online orders nobody is delivering yet."""
    return snapshots.unassigned_pool()


@router.get("/online/month/{month}", response_model=List[OrderResponse])
async def get_online_orders_for_month(month: str, staff: staff_dependency, snapshots: snapshot_dependency):
    return snapshots.paid_completed_for_month(Channel.ONLINE, month)


@router.get("/online/date/{day}", response_model=List[OrderResponse])
async def get_online_orders_for_date(day: str, staff: staff_dependency, snapshots: snapshot_dependency):
    return snapshots.paid_completed_for_date(Channel.ONLINE, day)


@router.get("/online/current-month", response_model=OrderPage)
async def get_current_month_online_orders(staff: staff_dependency, snapshots: snapshot_dependency,
                                          page: int = Query(1), limit: Optional[int] = Query(None)):
    return snapshots.paid_completed_current_month(Channel.ONLINE, page=page, limit=limit)


@router.patch("/online/{order_id}/status", response_model=OrderEnvelope)
@limiter.limit("60/minute")
async def update_online_order_status(request: Request, order_id: str, body: OrderStatusUpdate,
                                     staff: staff_dependency, service: order_service_dependency):
    order = service.set_order_status(order_id, body.order_status, Channel.ONLINE)
    return _envelope("Order status updated successfully", order)


@router.patch("/online/{order_id}/payment", response_model=OrderEnvelope)
async def update_online_payment_status(order_id: str, staff: staff_dependency,
                                       service: order_service_dependency,
                                       body: Optional[PaymentStatusUpdate] = None):
    target = body.payment_status if body else PaymentStatus.PAID
    order = service.set_payment_status(order_id, target, Channel.ONLINE)
    return _envelope("Payment status updated successfully", order)


@router.patch("/online/{order_id}/assign-delivery", response_model=OrderEnvelope)
async def assign_delivery(order_id: str, body: AssignCourierRequest, staff: staff_dependency,
                          service: order_service_dependency):
    order = service.assign_courier(order_id, body.deliverymanId, Channel.ONLINE)
    return _envelope("Deliveryman assigned successfully", order)


@router.patch("/online/{order_id}/approve", response_model=OrderEnvelope)
async def approve_online_order(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order approved", service.approve(order_id, Channel.ONLINE))


@router.patch("/online/{order_id}/complete", response_model=OrderEnvelope)
async def complete_online_order(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order completed", service.complete(order_id, Channel.ONLINE))


@router.patch("/online/{order_id}/mark-paid", response_model=OrderEnvelope)
async def mark_online_order_paid(order_id: str, staff: staff_dependency, service: order_service_dependency):
    return _envelope("Order marked as paid", service.mark_paid(order_id, Channel.ONLINE))


@router.patch("/online/{order_id}/mark-failed", response_model=OrderEnvelope)
async def mark_online_order_failed(order_id: str, staff: staff_dependency,
                                   service: order_service_dependency):
    return _envelope("Order payment marked as failed", service.mark_failed(order_id, Channel.ONLINE))


@router.get("/online/stream")
async def stream_online_orders(request: Request, brokers: brokers_dependency):
    return event_stream_response(request, brokers.online, predicates.channel_orders(Channel.ONLINE),
                                 label="admin:online")


@router.get("/online/approved/stream")
async def stream_courier_orders(request: Request, brokers: brokers_dependency,
                                deliverymanId: int = Query(...)):
    return event_stream_response(request, brokers.online, predicates.courier_dashboard(deliverymanId),
                                 label=f"courier:{deliverymanId}")


@router.get("/online/approved/cook/stream")
async def stream_unassigned_online_orders(request: Request, brokers: brokers_dependency):
    return event_stream_response(request, brokers.online, predicates.unassigned_pool(),
                                 label="dispatch:online")
