import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Registers every mapped class before the first query
import models  # noqa: F401
from core.config import settings
from core.database import Base, engine
from core.exceptions import OrderError
from core.logging_config import setup_logging, get_logger
from middleware import RequestIDMiddleware, get_request_id, limiter
from routers import admin_orders, couriers, online_orders, orders
from services.event_broker import OrderBrokers

setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    # The only brokers of this process; routers reach them through app.state
    app.state.brokers = OrderBrokers()
    logger.info("Application startup complete", extra={"event": "startup", "env": settings.ENV})

    yield

    logger.info(
        "Application shutting down",
        extra={
            "event": "shutdown",
            "dine_subscribers": app.state.brokers.dine.subscriber_count,
            "online_subscribers": app.state.brokers.online.subscriber_count
        }
    )


app = FastAPI(
    title="Mess Orders API",
    description="Dine-in and delivery orders with live kitchen, courier and customer boards",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    One access log line per request with status and duration.

    For event streams the duration is time to the response head, not the
    lifetime of the stream.
    """
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000

    client_ip = request.client.host if request.client else "unknown"
    logger.info(
        f'{client_ip} - "{request.method} {request.url.path}" {response.status_code}',
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": client_ip,
            "streaming": response.headers.get("content-type", "").startswith("text/event-stream")
        }
    )
    return response


# Outermost, so the access log line above carries the request id too
app.add_middleware(RequestIDMiddleware)


@app.get("/health")
async def health_check():
    logger.debug("Health check requested")
    return {"status": "Healthy"}


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    """Domain errors become {"detail", "error"} with the error's own status."""
    logger.warning(
        f"Order request rejected: {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": exc.error,
            "status_code": exc.status_code,
            "request_id": get_request_id(request)
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last resort: log the stack trace with the request context and answer a
    generic 500 without internals.
    """
    # FastAPI renders these itself
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise

    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "request_id": get_request_id(request)
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# /orders/online/... must match before /orders/{username}/...
app.include_router(online_orders.router)
app.include_router(orders.router)
app.include_router(admin_orders.router)
app.include_router(couriers.router)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
