"""Integration tests for the Ordering API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.routes import order_router, refund_router, stock_router
from ordering.gateway import GatewayErrorKind, get_gateway
from ordering.order.order import Order, OrderStatus
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(refund_router)
    app.include_router(stock_router)
    register_exception_handlers(app)
    return TestClient(app)


def _place_order(client, customer_id="cust-api-001"):
    response = client.post(
        "/orders",
        json={
            "customer_id": customer_id,
            "lines": [
                {
                    "product_id": "hoodie",
                    "variant_id": "hoodie-m",
                    "quantity": 2,
                    "unit_price": 40.0,
                },
                {
                    "product_id": "custom-embroidery",
                    "quantity": 1,
                    "unit_price": 10.0,
                    "customization": {"embroidery_data": {"text": "Go Team"}},
                },
            ],
            "subtotal": 90.0,
            "shipping": 8.0,
            "tax": 2.0,
            "total": 100.0,
        },
    )
    assert response.status_code == 201
    return response.json()["order_id"]


def _act(client, order_id, action, **extra):
    response = client.post(f"/orders/{order_id}/actions", json={"action": action, **extra})
    assert response.status_code == 200, response.json()
    return response.json()["status"]


def _delivered_paid_order(client):
    order_id = _place_order(client)
    _act(client, order_id, "approve")
    response = client.post(
        f"/orders/{order_id}/payments",
        json={"provider": "stripe", "capture_id": "ch_api_1", "amount": 100.0},
    )
    assert response.status_code == 200
    for action in ["ready-for-production", "in-production", "ready-for-checkout", "shipped", "delivered"]:
        _act(client, order_id, action)
    return order_id


class TestOrderEndpoints:
    def test_place_order(self, client):
        order_id = _place_order(client)
        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.PENDING.value

    def test_place_order_with_bad_totals(self, client):
        response = client.post(
            "/orders",
            json={
                "customer_id": "cust-api-001",
                "lines": [{"product_id": "mug", "quantity": 1, "unit_price": 10.0}],
                "subtotal": 10.0,
                "total": 99.0,
            },
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error_kind"] == "validation"

    def test_place_order_without_lines(self, client):
        response = client.post(
            "/orders",
            json={"customer_id": "cust-api-001", "lines": [], "subtotal": 0.0, "total": 0.0},
        )
        assert response.status_code == 422

    def test_approve_returns_pending_payment(self, client):
        order_id = _place_order(client)
        assert _act(client, order_id, "approve", operator_id="admin-1") == "pending-payment"

    def test_approve_deducts_stock(self, client):
        unit_id = client.post("/stock", json={"product_id": "hoodie", "variant_id": "hoodie-m", "stock": 5}).json()[
            "unit_id"
        ]
        order_id = _place_order(client)

        _act(client, order_id, "approve")

        assert client.get(f"/stock/{unit_id}").json()["stock"] == 3

    def test_invalid_transition_is_409(self, client):
        order_id = _place_order(client)
        response = client.post(f"/orders/{order_id}/actions", json={"action": "delivered"})
        assert response.status_code == 409
        assert response.json()["detail"]["error_kind"] == "conflict"

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/missing-order")
        assert response.status_code == 404

    def test_get_order(self, client):
        order_id = _place_order(client)
        _act(client, order_id, "approve")
        body = client.get(f"/orders/{order_id}").json()
        assert body["status"] == "pending-payment"
        assert body["phase"] == "stock_commit"
        assert body["last_requested_action"] == "approve"
        assert len(body["lines"]) == 2

    def test_cancel(self, client):
        order_id = _place_order(client)
        response = client.put(
            f"/orders/{order_id}/cancel",
            json={"reason": "Ordered twice", "acting_user_id": "cust-api-001"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_label_and_void(self, client):
        order_id = _place_order(client)
        for action in ["approve", "approved-processing", "ready-for-production", "in-production"]:
            _act(client, order_id, action)

        response = client.post(f"/orders/{order_id}/label", json={"carrier": "USPS"})
        assert response.status_code == 200
        assert response.json()["tracking_number"]

        response = client.delete(f"/orders/{order_id}/label")
        assert response.status_code == 200
        assert response.json()["status"] == "in-production"


class TestRefundEndpoints:
    def test_refund_happy_path(self, client):
        order_id = _delivered_paid_order(client)

        response = client.post(
            "/refunds",
            json={"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind"},
        )
        assert response.status_code == 201
        refund_id = response.json()["refund_id"]

        response = client.put(f"/refunds/{refund_id}/approve", json={"operator_id": "admin-1"})
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        assert client.get(f"/refunds/{refund_id}").json()["status"] == "completed"
        assert client.get(f"/orders/{order_id}").json()["status"] == "refunded"

    def test_duplicate_request_is_409(self, client):
        order_id = _delivered_paid_order(client)
        payload = {"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind", "amount": 10.0}
        assert client.post("/refunds", json=payload).status_code == 201
        assert client.post("/refunds", json=payload).status_code == 409

    def test_manual_intervention_is_422(self, client):
        order_id = _place_order(client)
        for action in [
            "approve",
            "approved-processing",
            "ready-for-production",
            "in-production",
            "ready-for-checkout",
            "shipped",
            "delivered",
        ]:
            _act(client, order_id, action)
        refund_id = client.post(
            "/refunds",
            json={"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind"},
        ).json()["refund_id"]

        response = client.put(f"/refunds/{refund_id}/approve", json={})

        assert response.status_code == 422
        assert response.json()["detail"]["error_kind"] == "gateway_manual_intervention"
        assert client.get(f"/refunds/{refund_id}").json()["status"] == "failed"

    def test_transient_gateway_error_is_503(self, client):
        order_id = _delivered_paid_order(client)
        get_gateway("stripe").configure(should_succeed=False, error_kind=GatewayErrorKind.TRANSIENT)
        refund_id = client.post(
            "/refunds",
            json={"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind"},
        ).json()["refund_id"]

        response = client.put(f"/refunds/{refund_id}/approve", json={})

        assert response.status_code == 503

    def test_gateway_rejection_is_402(self, client):
        order_id = _delivered_paid_order(client)
        get_gateway("stripe").configure(should_succeed=False)
        refund_id = client.post(
            "/refunds",
            json={"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind"},
        ).json()["refund_id"]

        assert client.put(f"/refunds/{refund_id}/approve", json={}).status_code == 402

    def test_cancel_by_other_user_is_400(self, client):
        order_id = _delivered_paid_order(client)
        refund_id = client.post(
            "/refunds",
            json={"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind"},
        ).json()["refund_id"]

        response = client.put(f"/refunds/{refund_id}/cancel", json={"acting_user_id": "cust-other"})

        assert response.status_code == 400

    def test_review_and_reject(self, client):
        order_id = _delivered_paid_order(client)
        refund_id = client.post(
            "/refunds",
            json={"order_id": order_id, "user_id": "cust-api-001", "reason": "changed_mind"},
        ).json()["refund_id"]

        assert client.put(f"/refunds/{refund_id}/review", json={"reviewer_id": "admin-1"}).json()["status"] == (
            "under_review"
        )
        response = client.put(f"/refunds/{refund_id}/reject", json={"reason": "Worn item"})
        assert response.json()["status"] == "rejected"
        assert client.get(f"/orders/{order_id}").json()["refund_status"] == "none"


class TestStockEndpoints:
    def test_register_and_adjust(self, client):
        unit_id = client.post("/stock", json={"product_id": "mug", "stock": 4}).json()["unit_id"]

        response = client.put(f"/stock/{unit_id}/adjust", json={"new_stock": 9, "reason": "Recount"})

        assert response.status_code == 200
        assert response.json()["stock"] == 9

    def test_unknown_unit_is_404(self, client):
        assert client.get("/stock/missing").status_code == 404
