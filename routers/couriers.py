from typing import List

from fastapi import APIRouter, Request
from starlette import status

from middleware.rate_limiter import limiter
from schemas.courier_schemas import CourierResponse, CreateCourierRequest, UpdateCourierRequest
from services.courier_service import CourierService
from utils.deps import db_dependency, order_service_dependency, staff_dependency
from utils.logger import get_logger, sanitize_log_data

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/admin/deliverymen",
    tags=["couriers"]
)


@router.get("", response_model=List[CourierResponse])
async def list_couriers(staff: staff_dependency, db: db_dependency):
    return CourierService.list_couriers(db)


@router.post("", response_model=CourierResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def create_courier(request: Request, body: CreateCourierRequest, staff: staff_dependency,
                         db: db_dependency):
    logger.debug("Courier registration requested", extra=sanitize_log_data({"courier": body.model_dump()}))
    courier = CourierService.create_courier(db, body)
    logger.info(
        "Courier registered by staff",
        extra={"courier_id": courier.id, "staff_id": staff.get("staff_id")}
    )
    return courier


@router.patch("/{courier_id}", response_model=CourierResponse)
async def update_courier(courier_id: int, body: UpdateCourierRequest, staff: staff_dependency,
                         db: db_dependency, service: order_service_dependency):
    courier = CourierService.update_courier(db, courier_id, body)

    # Snapshots embed the courier's name and number
    service.republish([order.order_id for order in courier.orders])
    return courier


@router.delete("/{courier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_courier(courier_id: int, staff: staff_dependency, db: db_dependency,
                         service: order_service_dependency):
    """
    Remove a courier. Their orders fall back to the unassigned pool and every
    board is told about it.
    """
    affected = CourierService.delete_courier(db, courier_id)
    service.republish(affected)
