"""Integration tests for buyer, seller and admin order endpoints."""

import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from marketplace.api import create_app
from marketplace.domain import marketplace

BUYER_ID = "buyer-001"
BUYER = {"X-User-Id": BUYER_ID}
SELLER_A = {"X-User-Id": "seller-a", "X-User-Role": "seller"}
SELLER_B = {"X-User-Id": "seller-b", "X-User-Role": "seller"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture()
def client(notifier):
    return TestClient(create_app(marketplace))


@pytest.fixture()
def order(shop):
    shop.variant("P1", "V1", seller_id="seller-a", price=20.0)
    shop.variant("P2", "V2", seller_id="seller-b", price=30.0)
    return shop.checkout(BUYER_ID, lines=(("P1", "V1", 1), ("P2", "V2", 2)))


def _item_for(order, seller_id):
    return str(next(i for i in order.items if str(i.seller_id) == seller_id).id)


class TestApplicationSurface:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-Id": "req-42"})
        assert response.headers["X-Request-Id"] == "req-42"

    def test_unknown_role_is_unauthorized(self, client):
        response = client.get("/me/orders", headers={"X-User-Id": "u", "X-User-Role": "wizard"})
        assert response.status_code == 401

    def test_unexpected_errors_are_hidden(self, order, monkeypatch):
        from marketplace.order.repository import OrderRepository

        def explode(*args, **kwargs):
            raise RuntimeError("database exploded")

        monkeypatch.setattr(OrderRepository, "get_for_buyer", explode)
        client = TestClient(create_app(marketplace), raise_server_exceptions=False)

        response = client.get(f"/me/orders/{order.id}", headers=BUYER)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_business_routes_run_in_the_threadpool(self, client):
        endpoints = [
            route.endpoint
            for route in client.app.routes
            if isinstance(route, APIRoute) and route.path != "/health"
        ]
        assert endpoints
        assert not [e.__name__ for e in endpoints if inspect.iscoroutinefunction(e)]


class TestBuyerOrders:
    def test_list(self, client, order):
        response = client.get("/me/orders", headers=BUYER)

        assert response.status_code == 200
        body = response.json()
        assert body["totalResults"] == 1
        assert body["totalPages"] == 1
        assert body["page"] == 1
        assert body["results"][0]["id"] == str(order.id)

    def test_invalid_status_filter(self, client, order):
        assert client.get("/me/orders?status=bogus", headers=BUYER).status_code == 400

    def test_detail_for_other_buyer_is_not_found(self, client, order):
        response = client.get(f"/me/orders/{order.id}", headers={"X-User-Id": "buyer-999"})
        assert response.status_code == 404

    def test_cancel(self, client, order, notifier):
        response = client.post(f"/me/orders/{order.id}/cancel", json={"reason": "Oops"}, headers=BUYER)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled_by_user"
        assert body["cancellationReason"] == "Oops"
        assert "order_status_changed" in notifier.kinds()

    def test_cancel_without_body(self, client, order):
        response = client.post(f"/me/orders/{order.id}/cancel", headers=BUYER)
        assert response.status_code == 200

    def test_cancel_shipped_order_conflicts(self, client, order):
        client.patch(
            f"/me/store/orders/{order.id}/status",
            json={"status": "shipped", "trackingNumber": "T-1"},
            headers=SELLER_A,
        )

        response = client.post(f"/me/orders/{order.id}/cancel", headers=BUYER)

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["current_status"] == ["shipped"]
        assert error["attempted_status"] == ["cancelled_by_user"]


class TestSellerOrders:
    def test_buyer_cannot_use_store(self, client, order):
        assert client.get("/me/store/orders", headers=BUYER).status_code == 403

    def test_admin_is_sent_to_admin_routes(self, client, order):
        response = client.patch(
            f"/me/store/orders/{order.id}/status",
            json={"status": "shipped", "trackingNumber": "T-1"},
            headers=ADMIN,
        )
        assert response.status_code == 403
        assert client.get("/me/store/returns", headers=ADMIN).status_code == 403

    def test_seller_sees_only_own_items(self, client, order):
        response = client.get("/me/store/orders", headers=SELLER_A)

        body = response.json()
        assert body["totalResults"] == 1
        items = body["results"][0]["items"]
        assert [i["sellerId"] for i in items] == ["seller-a"]

    def test_unrelated_seller_gets_not_found(self, client, order):
        response = client.get(f"/me/store/orders/{order.id}", headers={"X-User-Id": "s-z", "X-User-Role": "seller"})
        assert response.status_code == 404

    def test_ship_without_tracking_is_a_bad_request(self, client, order):
        response = client.patch(f"/me/store/orders/{order.id}/status", json={"status": "shipped"}, headers=SELLER_A)
        assert response.status_code == 400

    def test_ship_notifies_buyer(self, client, order, notifier):
        response = client.patch(
            f"/me/store/orders/{order.id}/status",
            json={"status": "shipped", "trackingNumber": "T-1", "carrier": "UPS"},
            headers=SELLER_A,
        )

        assert response.status_code == 200
        assert response.json()["trackingNumber"] == "T-1"
        kinds = notifier.kinds()
        assert "order_status_changed" in kinds
        assert "order_item_status_changed" in kinds

    def test_forbidden_target(self, client, order):
        response = client.patch(f"/me/store/orders/{order.id}/status", json={"status": "completed"}, headers=SELLER_A)
        assert response.status_code == 403

    def test_seller_item_status(self, client, order):
        item_id = _item_for(order, "seller-b")

        response = client.patch(
            f"/me/store/orders/{order.id}/items/{item_id}/status",
            json={"status": "shipped"},
            headers=SELLER_B,
        )

        assert response.status_code == 200
        assert response.json()["items"][0]["itemStatus"] == "shipped"
        assert response.json()["status"] == "processing"

    def test_illegal_item_move_conflicts(self, client, order):
        item_id = _item_for(order, "seller-b")

        response = client.patch(
            f"/me/store/orders/{order.id}/items/{item_id}/status",
            json={"status": "delivered"},
            headers=SELLER_B,
        )

        assert response.status_code == 409


class TestAdminOrders:
    def test_seller_cannot_use_admin(self, client, order):
        assert client.get("/admin/orders", headers=SELLER_A).status_code == 403

    def test_list_with_filters(self, client, order):
        assert client.get("/admin/orders?sellerId=seller-b", headers=ADMIN).json()["totalResults"] == 1
        assert client.get("/admin/orders?userId=someone-else", headers=ADMIN).json()["totalResults"] == 0

    def test_status_override_with_notes(self, client, order):
        response = client.patch(
            f"/admin/orders/{order.id}/status",
            json={"status": "cancelled_by_admin", "notes": "Fraud check"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled_by_admin"
        assert "Fraud check" in body["internalNotes"]

    def test_admin_skips_straight_to_delivered(self, client, order):
        response = client.patch(f"/admin/orders/{order.id}/status", json={"status": "delivered"}, headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "delivered"
        assert {i["itemStatus"] for i in body["items"]} == {"delivered"}

    def test_internal_notes_hidden_from_buyer(self, client, order):
        client.patch(
            f"/admin/orders/{order.id}/status",
            json={"status": "cancelled_by_admin", "notes": "Fraud check"},
            headers=ADMIN,
        )
        assert client.get(f"/me/orders/{order.id}", headers=BUYER).json()["internalNotes"] is None

    def test_refund(self, client, order, notifier):
        response = client.post(
            f"/admin/orders/{order.id}/refund",
            json={"amount": 20.0, "reason": "Goodwill"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "refunded"
        assert body["paymentStatus"] == "refunded"
        assert body["refundAmount"] == 20.0
        assert "order_refunded" in notifier.kinds()

    def test_refund_over_total_is_a_bad_request(self, client, order):
        response = client.post(
            f"/admin/orders/{order.id}/refund",
            json={"amount": 10_000.0, "reason": "Too much"},
            headers=ADMIN,
        )
        assert response.status_code == 400

    def test_admin_item_status(self, client, order):
        item_id = _item_for(order, "seller-a")
        response = client.patch(
            f"/admin/orders/{order.id}/items/{item_id}/status",
            json={"status": "cancelled"},
            headers=ADMIN,
        )
        assert response.status_code == 200
