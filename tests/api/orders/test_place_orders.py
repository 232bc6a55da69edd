from models.enums import EventKind
from tests.helpers import dine_payload, online_payload


async def test_place_dine_order(client, brokers):
    """Test placing a dine-in order returns the full order and publishes it."""
    events = []
    brokers.dine.subscribe(events.append)

    response = await client.post("/orders/placeorder", json=dine_payload())

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Order placed successfully"

    order = data["order"]
    assert order["order_id"].startswith("order_")
    assert order["channel"] == "dine"
    assert order["table_number"] == 4
    assert order["total_amt"] == 280.0
    assert order["order_status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["completion_time"] is None
    assert [item["total_price"] for item in order["items"]] == [240.0, 40.0]

    assert [event.kind for event in events] == [EventKind.NEW_ORDER]
    assert events[0].order.order_id == order["order_id"]


async def test_place_online_order(client, brokers):
    events = []
    brokers.online.subscribe(events.append)

    response = await client.post("/orders/online/placeorder", json=online_payload())

    assert response.status_code == 201
    order = response.json()["order"]
    assert order["channel"] == "online"
    assert order["mobile_no"] == "+919876543210"
    assert order["address"] == "12 MG Road, Bengaluru"
    assert order["deliveryman"] is None
    assert order["total_amt"] == 100.0
    assert len(events) == 1


async def test_client_total_is_recomputed(client):
    payload = dine_payload()
    payload["total_amt"] = 0.01

    response = await client.post("/orders/placeorder", json=payload)

    assert response.status_code == 201
    assert response.json()["order"]["total_amt"] == 280.0


async def test_place_order_without_items(client, brokers):
    events = []
    brokers.dine.subscribe(events.append)

    response = await client.post("/orders/placeorder", json=dine_payload(items=[]))

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"
    assert events == []


async def test_place_order_with_zero_quantity(client):
    items = [{"item_id": "tea", "item_name": "Tea", "qty": 0, "item_price": 10}]

    response = await client.post("/orders/placeorder", json=dine_payload(items=items))

    assert response.status_code == 422
    assert "quantity" in response.json()["detail"]


async def test_place_order_with_sub_cent_price(client):
    items = [{"item_id": "chai", "item_name": "Cutting Chai", "qty": 3, "item_price": 0.333}]

    response = await client.post("/orders/placeorder", json=dine_payload(items=items))

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"
    assert "two decimal places" in response.json()["detail"]


async def test_place_order_totals_are_exact(client):
    items = [{"item_id": "samosa", "item_name": "Samosa", "qty": 3, "item_price": 0.1},
             {"item_id": "naan", "item_name": "Butter Naan", "qty": 7, "item_price": 19.99}]

    response = await client.post("/orders/placeorder", json=dine_payload(items=items))

    order = response.json()["order"]
    assert [item["total_price"] for item in order["items"]] == [0.3, 139.93]
    assert order["total_amt"] == 140.23


async def test_place_order_with_bad_table(client):
    response = await client.post("/orders/placeorder", json=dine_payload(table_number=11))
    assert response.status_code == 422


async def test_place_online_order_with_bad_phone(client):
    payload = online_payload()
    payload["mobile_no"] = "12345"

    response = await client.post("/orders/online/placeorder", json=payload)

    assert response.status_code == 422


async def test_customer_order_history(client):
    for _ in range(6):
        await client.post("/orders/placeorder", json=dine_payload())
    await client.post("/orders/placeorder", json=dine_payload(username="ravi"))
    await client.post("/orders/online/placeorder", json=online_payload(username="asha"))

    history = await client.get("/orders/asha")
    latest = await client.get("/orders/asha/latest")
    online_history = await client.get("/orders/online/asha")

    assert history.status_code == 200
    assert len(history.json()) == 6
    assert all(order["channel"] == "dine" for order in history.json())
    assert len(latest.json()) == 5
    assert [order["channel"] for order in online_history.json()] == ["online"]


async def test_unknown_customer_has_no_orders(client):
    response = await client.get("/orders/nobody")

    assert response.status_code == 200
    assert response.json() == []


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "kitchen-display-7"})

    assert response.status_code == 200
    assert response.json() == {"status": "Healthy"}
    assert response.headers["X-Request-ID"] == "kitchen-display-7"
