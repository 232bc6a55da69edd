from typing import List

from fastapi import APIRouter, Request
from starlette import status

from middleware.rate_limiter import limiter
from models.enums import Channel
from schemas.order_schemas import DineOrderDraft, OrderEnvelope, OrderResponse
from services import predicates
from services.stream_session import event_stream_response
from utils.deps import brokers_dependency, order_service_dependency, snapshot_dependency
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/orders",
    tags=["dine orders"]
)


@router.post("/placeorder", response_model=OrderEnvelope, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def place_order(request: Request, body: DineOrderDraft, service: order_service_dependency):
    order = service.create_order(body)
    return {"message": "Order placed successfully", "order": order}


@router.get("/{username}", response_model=List[OrderResponse])
async def get_user_orders(username: str, snapshots: snapshot_dependency):
    """All dine orders of a customer, newest first."""
    return snapshots.user_orders(Channel.DINE, username)


@router.get("/{username}/latest", response_model=List[OrderResponse])
async def get_latest_user_orders(username: str, snapshots: snapshot_dependency):
    return snapshots.latest_user_orders(Channel.DINE, username)


@router.get("/{username}/stream")
async def stream_user_orders(request: Request, username: str, brokers: brokers_dependency):
    """
    Customer order tracker: every change to this customer's dine orders,
    as server-sent events.
    """
    return event_stream_response(
        request, brokers.dine, predicates.customer_orders(username), label=f"customer:{username}"
    )
