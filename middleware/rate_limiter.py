from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from jose import jwt, JWTError
from core.config import settings


def get_user_id(request: Request) -> str:
    """
    Rate limit key: the staff id of a valid bearer token, otherwise the
    client address. Customer endpoints carry no token, so customers are
    limited per address.
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            payload = {}
        staff_id = payload.get("id")
        if staff_id:
            return f"staff:{staff_id}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_id,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.ENV != "testing"
)
