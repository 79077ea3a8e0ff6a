"""Tests for the storefront API client."""

import asyncio
from decimal import Decimal

import httpx
import pytest

from conftest import make_client, product_node
from storefront_server.errors import FetchError, ProductNotFound
from storefront_server.storefront_client import StorefrontClient
from test_storage import make_line


def graphql(data=None, errors=None, status_code=200):
    body = {}
    if data is not None:
        body["data"] = data
    if errors is not None:
        body["errors"] = errors
    return lambda request: httpx.Response(status_code, json=body)


def test_fetch_catalog_flattens_edges():
    requests = []

    def handler(body):
        requests.append(body)
        return httpx.Response(
            200,
            json={
                "data": {
                    "products": {
                        "edges": [
                            {"node": product_node()},
                            {"node": product_node(product_id="p-2", handle="brush", title="Brush")},
                        ]
                    }
                }
            },
        )

    products = asyncio.run(make_client(handler).fetch_catalog(20))

    assert requests[0]["variables"] == {"first": 20}
    assert "products(first: $first)" in requests[0]["query"]
    assert [product.handle for product in products] == ["eye-corrector", "brush"]
    first = products[0]
    assert [option.name for option in first.options] == ["Size", "Shade"]
    assert first.variants[3].price.amount == Decimal("32.50")
    assert first.variants[3].price.currency_code == "USD"
    assert first.variants[0].available_for_sale is True
    assert first.images[0].alt_text == "Front"
    assert first.images[1].alt_text is None


def test_request_targets_storefront_endpoint():
    seen = []

    def transport_handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": {"products": {"edges": []}}})

    client = StorefrontClient(
        "krale-test.myshopify.com",
        "secret",
        api_version="2025-07",
        transport=httpx.MockTransport(transport_handler),
    )
    assert asyncio.run(client.fetch_catalog(5)) == []

    assert str(seen[0].url) == "https://krale-test.myshopify.com/api/2025-07/graphql.json"
    assert seen[0].method == "POST"
    assert seen[0].headers["X-Shopify-Storefront-Access-Token"] == "secret"


@pytest.mark.parametrize("page_size", [0, -1, 251])
def test_fetch_catalog_rejects_bad_page_size(page_size):
    client = make_client(graphql(data={}))
    with pytest.raises(ValueError):
        asyncio.run(client.fetch_catalog(page_size))


def test_fetch_product_by_handle():
    requests = []

    def handler(body):
        requests.append(body)
        return httpx.Response(200, json={"data": {"productByHandle": product_node()}})

    product = asyncio.run(make_client(handler).fetch_product_by_handle("eye-corrector"))

    assert requests[0]["variables"] == {"handle": "eye-corrector"}
    assert product.id == "gid://shopify/Product/1"
    assert len(product.variants) == 4


def test_unknown_handle_is_none_not_error():
    client = make_client(graphql(data={"productByHandle": None}))
    assert asyncio.run(client.fetch_product_by_handle("nope")) is None


def test_get_product_raises_not_found():
    client = make_client(graphql(data={"productByHandle": None}))
    with pytest.raises(ProductNotFound) as exc_info:
        asyncio.run(client.get_product("nope"))
    assert exc_info.value.handle == "nope"


def test_empty_handle_rejected():
    client = make_client(graphql(data={}))
    with pytest.raises(ValueError):
        asyncio.run(client.fetch_product_by_handle(""))


def test_payment_required():
    client = make_client(graphql(data={}, status_code=402))
    with pytest.raises(FetchError, match="Payment required"):
        asyncio.run(client.fetch_catalog(20))


def test_http_error_status():
    client = make_client(graphql(data={}, status_code=500))
    with pytest.raises(FetchError, match="status: 500"):
        asyncio.run(client.fetch_catalog(20))


def test_graphql_errors():
    client = make_client(
        graphql(errors=[{"message": "Throttled"}, {"message": "Access denied"}])
    )
    with pytest.raises(FetchError, match="Throttled, Access denied"):
        asyncio.run(client.fetch_product_by_handle("eye-corrector"))


def test_body_that_is_not_json():
    client = make_client(lambda body: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_catalog(20))


def test_transport_failure():
    def handler(body):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(FetchError, match="Could not reach"):
        asyncio.run(make_client(handler).fetch_catalog(20))


def test_missing_variant_fields_is_fetch_error():
    node = product_node()
    del node["variants"]["edges"][0]["node"]["price"]
    client = make_client(graphql(data={"productByHandle": node}))

    with pytest.raises(FetchError, match="Malformed"):
        asyncio.run(client.fetch_product_by_handle("eye-corrector"))


def test_missing_product_list_is_fetch_error():
    client = make_client(graphql(data={"shop": {}}))
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_catalog(20))


def test_one_malformed_product_fails_whole_catalog():
    broken = product_node(product_id="p-2", handle="broken")
    del broken["options"]
    client = make_client(
        graphql(data={"products": {"edges": [{"node": product_node()}, {"node": broken}]}})
    )

    with pytest.raises(FetchError):
        asyncio.run(client.fetch_catalog(20))


def test_missing_product_by_handle_field_is_fetch_error():
    client = make_client(graphql(data={}))
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_product_by_handle("eye-corrector"))


def test_unconfigured_client():
    client = StorefrontClient(None, None)
    with pytest.raises(FetchError, match="not configured"):
        asyncio.run(client.fetch_catalog(20))


def test_create_checkout():
    requests = []

    def handler(body):
        requests.append(body)
        return httpx.Response(
            200,
            json={
                "data": {
                    "cartCreate": {
                        "cart": {
                            "id": "gid://shopify/Cart/abc",
                            "checkoutUrl": "https://krale-test.myshopify.com/cart/c/abc?key=k",
                        },
                        "userErrors": [],
                    }
                }
            },
        )

    checkout = asyncio.run(make_client(handler).create_checkout([make_line("v-1", 2)]))

    assert requests[0]["variables"]["input"]["lines"] == [
        {"quantity": 2, "merchandiseId": "v-1"}
    ]
    assert checkout.cart_id == "gid://shopify/Cart/abc"
    url = httpx.URL(checkout.checkout_url)
    assert url.params["channel"] == "online_store"
    assert url.params["key"] == "k"


def test_create_checkout_user_errors():
    client = make_client(
        graphql(
            data={
                "cartCreate": {
                    "cart": None,
                    "userErrors": [{"field": ["lines"], "message": "Variant is sold out"}],
                }
            }
        )
    )
    with pytest.raises(FetchError, match="sold out"):
        asyncio.run(client.create_checkout([make_line()]))


def test_create_checkout_empty_cart():
    client = make_client(graphql(data={}))
    with pytest.raises(ValueError):
        asyncio.run(client.create_checkout([]))


def test_create_checkout_invalid_url():
    client = make_client(
        graphql(
            data={
                "cartCreate": {
                    "cart": {"id": "c-1", "checkoutUrl": "https://shop.example.com/cart\n"},
                    "userErrors": [],
                }
            }
        )
    )
    with pytest.raises(FetchError, match="Malformed checkout"):
        asyncio.run(client.create_checkout([make_line()]))
