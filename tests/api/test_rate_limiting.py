from middleware.rate_limiter import get_user_id, limiter
from core.config import settings
from starlette.requests import Request
from tests.helpers import dine_payload, make_staff_token


def make_request(headers=None):
    raw_headers = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers,
                    "client": ("10.0.0.5", 5000)})


def test_rate_limiter_disabled_in_testing():
    """Verify rate limiter is disabled during tests."""

    assert settings.ENV == "testing"
    assert limiter.enabled is False


def test_rate_limit_key_prefers_staff_id():
    request = make_request({"Authorization": f"Bearer {make_staff_token(staff_id=42)}"})
    assert get_user_id(request) == "staff:42"


def test_rate_limit_key_falls_back_to_client_address():
    assert get_user_id(make_request()) == "10.0.0.5"
    assert get_user_id(make_request({"Authorization": "Bearer garbage"})) == "10.0.0.5"


async def test_can_make_multiple_requests_in_tests(client):
    """Verify rate limiting doesn't interfere with tests."""
    # Place 25 orders (normally limited to 20/min)
    for i in range(25):
        response = await client.post("/orders/placeorder", json=dine_payload())
        assert response.status_code == 201
