import pytest
from fastapi.testclient import TestClient

from restaurant.core.config import Settings
from restaurant.main import create_app

CUSTOMER = {"X-User-Id": "1", "X-User-Role": "CUSTOMER"}
STRANGER = {"X-User-Id": "2", "X-User-Role": "CUSTOMER"}
KITCHEN_A = {"X-User-Id": "10", "X-User-Role": "KITCHEN_STAFF"}
KITCHEN_B = {"X-User-Id": "11", "X-User-Role": "KITCHEN_STAFF"}
DRIVER = {"X-User-Id": "30", "X-User-Role": "DELIVERY_STAFF"}
SUPPORT = {"X-User-Id": "40", "X-User-Role": "CUSTOMER_SUPPORT"}
ADMIN = {"X-User-Id": "100", "X-User-Role": "ADMIN"}

ORDER_BODY = {
    "items": [
        {"menuItemId": 2, "name": "Margherita Pizza", "price": 12.50, "quantity": 2},
        {"menuItemId": 5, "name": "Chocolate Lava Cake", "price": 8.50, "quantity": 2},
    ],
    "customer": {"name": "Jane Doe", "email": "jane@example.com", "phone": "+15550001111", "address": "1 Main St"},
    "total": 42.50,
}


@pytest.fixture
def client(tmp_path, notifier):
    config = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        REDIS_URL=None,
        SWEEPER_ENABLED=False,
        DB_RETRY_WAIT_SECONDS=0,
    )
    app = create_app(config, notifier=notifier)
    with TestClient(app) as client:
        yield client


def place(client, headers=CUSTOMER):
    response = client.post("/api/orders", json=ORDER_BODY, headers=headers)
    assert response.status_code == 201
    return response.json()["orderId"]


def move(client, order_id, headers, status, estimated_time=None):
    body = {"status": status}
    if estimated_time is not None:
        body["estimatedTime"] = estimated_time
    return client.put(f"/api/orders/{order_id}/status", json=body, headers=headers)


def test_health(client):
    body = client.get("/").json()
    assert body["status"] == "active"
    assert body["database"] == "connected"
    assert body["permission_cache"] == "memory"


def test_guest_can_place_but_not_read(client):
    order_id = place(client, headers={})

    response = client.get(f"/api/orders/{order_id}")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


@pytest.mark.parametrize("headers", [
    {"X-User-Id": "1"},
    {"X-User-Role": "ADMIN"},
    {"X-User-Id": "abc", "X-User-Role": "ADMIN"},
    {"X-User-Id": "1", "X-User-Role": "CHEF"},
])
def test_malformed_identity_is_rejected(client, headers):
    assert client.get("/api/orders", headers=headers).status_code == 401
    assert client.post("/api/orders", json=ORDER_BODY, headers=headers).status_code == 401


def test_order_flow_over_http(client):
    order_id = place(client)

    response = move(client, order_id, KITCHEN_A, "preparing", estimated_time=20)
    assert response.status_code == 200
    order = response.json()["order"]
    assert order["status"] == "preparing"
    assert order["kitchenStaffId"] == 10
    assert order["estimatedReadyAt"] is not None

    response = move(client, order_id, KITCHEN_B, "ready")
    assert response.status_code == 403
    assert "handled by another staff member" in response.json()["message"]

    assert move(client, order_id, KITCHEN_A, "ready").status_code == 200
    assert move(client, order_id, DRIVER, "out_for_delivery").json()["order"]["deliveryStaffId"] == 30
    assert move(client, order_id, DRIVER, "delivered").status_code == 200

    response = client.post("/api/reviews", json={"orderId": order_id, "rating": 5, "comment": "Great"}, headers=CUSTOMER)
    assert response.status_code == 201
    review = response.json()
    assert review["isAccepted"] is False

    response = client.post("/api/reviews", json={"orderId": order_id, "rating": 4}, headers=CUSTOMER)
    assert response.status_code == 409

    response = client.patch(f"/api/reviews/{review['id']}/accept", json={"menuItemIds": [2, 5]}, headers=SUPPORT)
    assert response.status_code == 200
    assert response.json()["taggedMenuItemIds"] == [2, 5]

    detail = client.get(f"/api/orders/{order_id}", headers=CUSTOMER).json()
    assert detail["status"] == "delivered"
    assert detail["review"]["rating"] == 5
    assert detail["total"] == 42.5


def test_illegal_transition_reports_statuses(client):
    order_id = place(client)
    response = move(client, order_id, ADMIN, "delivered")

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "Conflict"
    assert body["current"] == "pending"
    assert body["requested"] == "delivered"


def test_whitelist_denial_body(client):
    order_id = place(client)
    response = move(client, order_id, SUPPORT, "preparing", estimated_time=5)

    assert response.status_code == 403
    assert response.json() == {
        "error": "Forbidden",
        "message": "CUSTOMER_SUPPORT may not set status to 'preparing'",
    }


def test_preparing_without_estimate_is_bad_request(client):
    order_id = place(client)
    assert move(client, order_id, KITCHEN_A, "preparing").status_code == 400


def test_unknown_status_is_rejected(client):
    order_id = place(client)
    assert move(client, order_id, ADMIN, "eaten").status_code == 422


def test_rating_out_of_range(client):
    response = client.post("/api/reviews", json={"orderId": 1, "rating": 6}, headers=CUSTOMER)
    assert response.status_code == 422


def test_missing_order_is_404(client):
    response = client.get("/api/orders/999", headers=ADMIN)
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_customer_cancel_and_hide(client):
    order_id = place(client)

    assert client.put(f"/api/orders/{order_id}/cancel", headers=STRANGER).status_code == 403

    response = client.put(f"/api/orders/{order_id}/cancel", headers=CUSTOMER)
    assert response.status_code == 200
    assert response.json()["order"]["status"] == "cancelled"

    assert client.delete(f"/api/orders/{order_id}", headers=CUSTOMER).status_code == 200
    assert client.get("/api/orders/my-orders", headers=CUSTOMER).json()["total"] == 0

    # still there for staff
    assert client.get(f"/api/orders/{order_id}", headers=SUPPORT).json()["isDeletedByCustomer"] is True


def test_admin_delete_purges(client):
    order_id = place(client)

    assert move(client, order_id, KITCHEN_A, "preparing", estimated_time=5).status_code == 200
    assert client.delete(f"/api/orders/{order_id}", headers=ADMIN).status_code == 409

    assert move(client, order_id, ADMIN, "cancelled").status_code == 200
    assert client.delete(f"/api/orders/{order_id}", headers=ADMIN).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=ADMIN).status_code == 404


def test_listing_and_pagination(client):
    for _ in range(3):
        place(client)
    place(client, headers=STRANGER)

    page = client.get("/api/orders", params={"page": 2, "limit": 3}, headers=SUPPORT).json()
    assert page["total"] == 4
    assert page["totalPages"] == 2
    assert len(page["data"]) == 1

    mine = client.get("/api/orders", headers=CUSTOMER).json()
    assert mine["total"] == 3

    assert client.get("/api/orders", params={"limit": 500}, headers=SUPPORT).status_code == 422


def test_permission_management(client):
    assert client.get("/api/permissions", headers=SUPPORT).status_code == 403

    kitchen = client.get("/api/permissions/KITCHEN_STAFF", headers=ADMIN).json()
    assert {"resource": "orders", "action": "update", "allowed": True}.items() <= next(
        p for p in kitchen if p["resource"] == "orders" and p["action"] == "update"
    ).items()

    response = client.put(
        "/api/permissions",
        json={"permissions": [{"role": "KITCHEN_STAFF", "resource": "orders", "action": "update", "allowed": False}]},
        headers=ADMIN,
    )
    assert response.status_code == 200

    order_id = place(client)
    response = move(client, order_id, KITCHEN_A, "preparing", estimated_time=5)
    assert response.status_code == 403
    assert response.json()["message"] == "You don't have permission to update orders"


def test_customers_cannot_accept_reviews(client):
    order_id = place(client)
    move(client, order_id, KITCHEN_A, "preparing", estimated_time=5)
    move(client, order_id, KITCHEN_A, "ready")
    move(client, order_id, DRIVER, "out_for_delivery")
    move(client, order_id, DRIVER, "delivered")
    review_id = client.post("/api/reviews", json={"orderId": order_id, "rating": 5}, headers=CUSTOMER).json()["id"]

    for headers in (CUSTOMER, STRANGER):
        response = client.patch(f"/api/reviews/{review_id}/accept", json={"menuItemIds": [1]}, headers=headers)
        assert response.status_code == 403

    assert client.get(f"/api/orders/{order_id}", headers=CUSTOMER).json()["review"]["isAccepted"] is False
