"""Tests for the HTTP API."""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import make_client, product_node, variant_node
from storefront_server import http_server

PRODUCTS = {
    "eye-corrector": product_node(),
    "sold-out": product_node(
        product_id="p-2",
        handle="sold-out",
        options=[{"name": "Shade", "values": ["Light"]}],
        variants=[variant_node("v-sold-out", {"Shade": "Light"}, available=False)],
    ),
}


def storefront(body):
    query = body["query"]
    if "productByHandle" in query:
        return httpx.Response(
            200, json={"data": {"productByHandle": PRODUCTS.get(body["variables"]["handle"])}}
        )
    if "cartCreate" in query:
        return httpx.Response(
            200,
            json={
                "data": {
                    "cartCreate": {
                        "cart": {"id": "c-1", "checkoutUrl": "https://shop.example.com/cart/c/1"},
                        "userErrors": [],
                    }
                }
            },
        )
    edges = [{"node": node} for node in PRODUCTS.values()]
    return httpx.Response(200, json={"data": {"products": {"edges": edges}}})


@pytest.fixture
def api(monkeypatch, tmp_path, store):
    monkeypatch.setenv("STOREFRONT_CART_FILE", str(tmp_path / "server-cart.json"))
    with TestClient(http_server.app) as client:
        http_server.storefront_client = make_client(storefront)
        http_server.cart_store = store
        yield client


def test_health(api):
    assert api.get("/health").json()["status"] == "healthy"


def test_list_products(api):
    response = api.get("/products", params={"page_size": 2})

    assert response.status_code == 200
    assert response.json()["count"] == 2


def test_list_products_bad_page_size(api):
    assert api.get("/products", params={"page_size": 500}).status_code == 400


def test_list_products_zero_page_size(api):
    assert api.get("/products", params={"page_size": 0}).status_code == 400


def test_get_product(api):
    data = api.get("/products/eye-corrector").json()

    assert data["status"] == "loaded"
    assert data["variant"]["id"] == "v-small-gold"
    assert data["available"] is True


def test_get_unknown_product(api):
    assert api.get("/products/nope").status_code == 404


def test_select_options(api):
    response = api.post(
        "/products/eye-corrector/select",
        json={"selections": {"Size": "Gold", "Shade": "Pink"}, "image_index": 1},
    )

    data = response.json()
    assert data["variant"]["id"] == "v-gold-pink"
    assert data["selected_image_index"] == 1


def test_select_unknown_value(api):
    response = api.post("/products/eye-corrector/select", json={"selections": {"Size": "XL"}})
    assert response.status_code == 400


def test_add_by_selections_and_update(api, store):
    response = api.post(
        "/cart/add",
        json={"handle": "eye-corrector", "selections": {"Size": "Gold", "Shade": "Pink"}, "quantity": 2},
    )
    assert response.status_code == 200
    assert response.json()["cart"]["totals"]["item_count"] == 2

    response = api.post("/cart/update", json={"variant_id": "v-gold-pink", "quantity": 5})
    assert response.json()["cart"]["totals"]["item_count"] == 5

    cart = api.get("/cart").json()
    assert cart["lines"][0]["variant_id"] == "v-gold-pink"
    assert cart["totals"]["subtotal"] == "162.50"


def test_add_partial_selection_defaults_other_axes(api, store):
    api.post("/cart/add", json={"handle": "eye-corrector", "selections": {"Shade": "Pink"}})
    assert store.lines[0].variant_id == "v-small-pink"


def test_add_by_variant_id(api, store):
    api.post("/cart/add", json={"handle": "eye-corrector", "variant_id": "v-gold-gold"})
    assert store.lines[0].variant_id == "v-gold-gold"


def test_add_unavailable_variant(api, store):
    response = api.post("/cart/add", json={"handle": "sold-out"})

    assert response.status_code == 400
    assert store.lines == []


def test_add_unknown_product(api):
    assert api.post("/cart/add", json={"handle": "nope"}).status_code == 404


def test_update_missing_line(api):
    response = api.post("/cart/update", json={"variant_id": "missing", "quantity": 1})
    assert response.status_code == 400


def test_remove_and_clear(api, store):
    api.post("/cart/add", json={"handle": "eye-corrector"})
    api.post("/cart/add", json={"handle": "eye-corrector", "variant_id": "v-gold-pink"})

    assert api.post("/cart/remove", json={"variant_id": "v-small-gold"}).status_code == 200
    assert api.post("/cart/remove", json={"variant_id": "v-small-gold"}).status_code == 200
    assert [line.variant_id for line in store.lines] == ["v-gold-pink"]

    api.post("/cart/clear")
    assert store.lines == []


def test_checkout_and_complete(api, store):
    assert api.post("/cart/checkout").status_code == 400

    api.post("/cart/add", json={"handle": "eye-corrector"})
    checkout = api.post("/cart/checkout").json()
    assert checkout["checkout_url"] == "https://shop.example.com/cart/c/1?channel=online_store"

    api.post("/cart/checkout/complete")
    assert store.lines == []
