from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from core.exceptions import NotFound, ValidationError
from models.couriers import Courier
from schemas.courier_schemas import CreateCourierRequest, UpdateCourierRequest
from utils.hashing import get_password_hash
from utils.logger import get_logger

logger = get_logger(__name__)


class CourierService:
    """
    Courier directory.

    The order core only needs `resolve`; the rest is the back-office CRUD
    for delivery staff.
    """

    @staticmethod
    def resolve(db: Session, courier_id: int) -> Courier:
        """
        Resolve a courier id to its identity.

        Raises:
            NotFound: no courier with that id
        """
        courier = db.get(Courier, courier_id)
        if courier is None:
            raise NotFound(f"Courier {courier_id} not found")
        return courier

    @staticmethod
    def list_couriers(db: Session) -> list[Courier]:
        return db.query(Courier).order_by(Courier.name).all()

    @staticmethod
    def create_courier(db: Session, request: CreateCourierRequest) -> Courier:
        courier = Courier(
            name=request.username,
            mobile_no=request.mobile_no,
            hashed_password=get_password_hash(request.password),
        )
        db.add(courier)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("Courier name already taken", extra={"courier_name": request.username})
            raise ValidationError(f"Courier '{request.username}' already exists")

        db.refresh(courier)
        logger.info("Courier created", extra={"courier_id": courier.id})
        return courier

    @staticmethod
    def update_courier(db: Session, courier_id: int, request: UpdateCourierRequest) -> Courier:
        courier = CourierService.resolve(db, courier_id)

        if request.username is not None:
            courier.name = request.username.strip()
        if request.mobile_no is not None:
            courier.mobile_no = request.mobile_no
        if request.password:
            courier.hashed_password = get_password_hash(request.password)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(f"Courier '{request.username}' already exists")

        db.refresh(courier)
        logger.info("Courier updated", extra={"courier_id": courier.id})
        return courier

    @staticmethod
    def delete_courier(db: Session, courier_id: int) -> list[str]:
        """
        Delete a courier. Orders that referenced it become unassigned.

        Returns:
            order_ids whose deliveryman was cleared, so the caller can
            publish their new snapshots
        """
        courier = CourierService.resolve(db, courier_id)
        affected = [order.order_id for order in courier.orders]
        db.delete(courier)
        db.commit()
        logger.info("Courier deleted", extra={"courier_id": courier_id, "orders_unassigned": len(affected)})
        return affected
