import os

# Must be set before the app (and its settings) is imported
os.environ["ENV"] = "testing"
os.environ.setdefault("LOG_DIR", "logs")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.database import Base
from models.couriers import Courier
from services.event_broker import OrderBrokers
from services.order_service import OrderService
from utils.deps import get_db
from utils.hashing import get_password_hash
from tests.helpers import make_staff_token

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    Uses SYNC SQLAlchemy to match the service layer.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    # Drop all tables (cleanup)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def brokers() -> Generator[OrderBrokers, None, None]:
    """
    Fresh dine/online brokers installed on the app, standing in for the ones
    the lifespan builds (ASGITransport does not run the lifespan).
    """
    fresh = OrderBrokers()
    app.state.brokers = fresh
    yield fresh
    del app.state.brokers


@pytest.fixture
def order_service(session: Session, brokers: OrderBrokers) -> OrderService:
    return OrderService(session, brokers)


@pytest.fixture
async def client(session: Session, brokers: OrderBrokers):
    """
    Yields an HTTP client that interacts with the app using the test database.
    The client is async (for FastAPI), but the DB session is sync.
    """
    # Override the get_db dependency to use our test session
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db

    # Create async client for FastAPI
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers() -> dict:
    return {"Authorization": f"Bearer {make_staff_token()}"}


@pytest.fixture
def courier(session: Session) -> Courier:
    model = Courier(
        name="ravi",
        mobile_no="+919876543210",
        hashed_password=get_password_hash("DeliverMe123")
    )
    session.add(model)
    session.commit()
    session.refresh(model)
    return model


@pytest.fixture
def other_courier(session: Session) -> Courier:
    model = Courier(
        name="meena",
        mobile_no="+919876500001",
        hashed_password=get_password_hash("DeliverMe456")
    )
    session.add(model)
    session.commit()
    session.refresh(model)
    return model

