from core.database import SessionLocal
from typing import Annotated
from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from starlette import status
from core.config import settings
from services.event_broker import OrderBrokers
from services.order_service import OrderService
from services.snapshot_service import SnapshotQueryService

STAFF_ROLES = {"Manager", "SuperAdmin", "Cook", "DeliveryMan"}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


def get_brokers(request: Request) -> OrderBrokers:
    # Created by the lifespan in main.py, one pair per application
    return request.app.state.brokers

brokers_dependency = Annotated[OrderBrokers, Depends(get_brokers)]


def get_order_service(db: db_dependency, brokers: brokers_dependency) -> OrderService:
    return OrderService(db, brokers)

order_service_dependency = Annotated[OrderService, Depends(get_order_service)]


def get_snapshot_service(db: db_dependency) -> SnapshotQueryService:
    return SnapshotQueryService(db)

snapshot_dependency = Annotated[SnapshotQueryService, Depends(get_snapshot_service)]


def get_current_staff(token: Annotated[str, Depends(OAuth2PasswordBearer(tokenUrl="admin/login"))]):
    """
    Decode a staff bearer token issued by the admin login service.

    Token issuance lives outside this service; only the signature, the
    token type and the role are checked here.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        username: str = payload.get("sub")
        staff_id = payload.get("id")
        role: str = payload.get("role")
        token_type: str = payload.get("type", "access")

        if username is None or staff_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        if token_type != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Invalid token type. Access token required.")

        if role not in STAFF_ROLES:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                                detail="Staff role required.")

        return {"username": username, "staff_id": staff_id, "role": role}

    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Could not validate credentials.")


staff_dependency = Annotated[dict, Depends(get_current_staff)]
