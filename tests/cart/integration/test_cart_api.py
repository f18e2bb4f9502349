"""Integration tests for the cart endpoints via TestClient."""

import pytest
from fastapi.testclient import TestClient

from marketplace.api import create_app
from marketplace.domain import marketplace

BUYER = {"X-User-Id": "buyer-001"}


@pytest.fixture()
def client(catalog):
    catalog.add_variant("P1", "V1", "seller-1", 12.5, stock=5, product_name="Teapot")
    catalog.add_variant("P2", "V2", "seller-2", 3.0)
    return TestClient(create_app(marketplace))


def _create_anonymous_cart(client, quantity=1):
    response = client.post("/carts", json={"productId": "P1", "variantId": "V1", "quantity": quantity})
    assert response.status_code == 201
    return response.json()["id"]


class TestAnonymousCart:
    def test_create_returns_cart_representation(self, client):
        response = client.post("/carts", json={"productId": "P1", "variantId": "V1", "quantity": 2})

        assert response.status_code == 201
        body = response.json()
        assert body["userId"] is None
        assert body["totalItems"] == 1
        assert body["totalQuantity"] == 2
        assert body["subtotal"] == 25.0
        assert body["items"][0]["priceAtAddition"] == 12.5
        assert body["items"][0]["productName"] == "Teapot"

    def test_add_and_view(self, client):
        cart_id = _create_anonymous_cart(client)
        response = client.post(f"/carts/{cart_id}/items", json={"productId": "P2", "variantId": "V2"})
        assert response.status_code == 200

        body = client.get(f"/carts/{cart_id}").json()
        assert body["totalItems"] == 2

    def test_update_and_remove_item(self, client):
        cart_id = _create_anonymous_cart(client)
        item_id = client.get(f"/carts/{cart_id}").json()["items"][0]["id"]

        response = client.put(f"/carts/{cart_id}/items/{item_id}", json={"quantity": 4})
        assert response.json()["items"][0]["quantity"] == 4

        response = client.delete(f"/carts/{cart_id}/items/{item_id}")
        assert response.json()["items"] == []

    def test_quantity_zero_is_a_bad_request(self, client):
        cart_id = _create_anonymous_cart(client)
        item_id = client.get(f"/carts/{cart_id}").json()["items"][0]["id"]

        response = client.put(f"/carts/{cart_id}/items/{item_id}", json={"quantity": 0})
        assert response.status_code == 422

    def test_insufficient_stock_is_a_bad_request(self, client):
        response = client.post("/carts", json={"productId": "P1", "variantId": "V1", "quantity": 6})
        assert response.status_code == 400
        assert "quantity" in response.json()["error"]

    def test_unknown_cart_is_not_found(self, client):
        assert client.get("/carts/does-not-exist").status_code == 404

    def test_unknown_item_is_not_found(self, client):
        cart_id = _create_anonymous_cart(client)
        response = client.delete(f"/carts/{cart_id}/items/missing")
        assert response.status_code == 404

    def test_clear(self, client):
        cart_id = _create_anonymous_cart(client)
        response = client.delete(f"/carts/{cart_id}")
        assert response.status_code == 200
        assert response.json()["totalItems"] == 0

    def test_catalog_outage_is_service_unavailable(self, client, catalog):
        catalog.configure(available=False)
        response = client.post("/carts", json={"productId": "P1", "variantId": "V1"})
        assert response.status_code == 503


class TestBuyerCart:
    def test_requires_authentication(self, client):
        assert client.get("/me/cart").status_code == 401

    def test_empty_cart_for_new_buyer(self, client):
        response = client.get("/me/cart", headers=BUYER)
        assert response.status_code == 200
        body = response.json()
        assert body["id"] is None
        assert body["userId"] == "buyer-001"
        assert body["items"] == []

    def test_add_update_remove(self, client):
        response = client.post("/me/cart/items", json={"productId": "P1", "variantId": "V1"}, headers=BUYER)
        assert response.status_code == 200
        item_id = response.json()["items"][0]["id"]

        response = client.put(f"/me/cart/items/{item_id}", json={"quantity": 3}, headers=BUYER)
        assert response.json()["totalQuantity"] == 3

        response = client.delete(f"/me/cart/items/{item_id}", headers=BUYER)
        assert response.json()["totalItems"] == 0

    def test_clear(self, client):
        client.post("/me/cart/items", json={"productId": "P1", "variantId": "V1"}, headers=BUYER)
        response = client.delete("/me/cart", headers=BUYER)
        assert response.json()["items"] == []

    def test_snake_case_request_is_accepted(self, client):
        response = client.post("/me/cart/items", json={"product_id": "P2", "variant_id": "V2"}, headers=BUYER)
        assert response.status_code == 200


class TestMergeAnonymous:
    def test_merge_folds_lines_into_buyer_cart(self, client):
        cart_id = _create_anonymous_cart(client, quantity=2)
        client.post("/me/cart/items", json={"productId": "P1", "variantId": "V1"}, headers=BUYER)

        response = client.post("/me/cart/merge-anonymous", json={"anonymousCartId": cart_id}, headers=BUYER)

        assert response.status_code == 200
        body = response.json()
        assert body["merged"] is True
        assert body["cart"]["totalQuantity"] == 3
        assert client.get(f"/carts/{cart_id}").status_code == 404

    def test_merging_twice_is_a_no_op(self, client):
        cart_id = _create_anonymous_cart(client, quantity=2)
        client.post("/me/cart/merge-anonymous", json={"anonymousCartId": cart_id}, headers=BUYER)

        response = client.post("/me/cart/merge-anonymous", json={"anonymousCartId": cart_id}, headers=BUYER)

        assert response.status_code == 200
        assert response.json()["merged"] is False
        assert response.json()["cart"]["totalQuantity"] == 2
