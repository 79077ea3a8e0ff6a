"""Shared fixtures for storefront tests."""

import json
from typing import Any, Callable

import httpx
import pytest

from storefront_server.cart_store import CartStore
from storefront_server.models import Product
from storefront_server.storage import CartStorage
from storefront_server.storefront_client import StorefrontClient


def variant_node(
    variant_id: str,
    options: dict[str, str],
    amount: str = "24.00",
    available: bool = True,
) -> dict[str, Any]:
    return {
        "id": variant_id,
        "title": " / ".join(options.values()),
        "price": {"amount": amount, "currencyCode": "USD"},
        "availableForSale": available,
        "selectedOptions": [{"name": name, "value": value} for name, value in options.items()],
    }


def product_node(
    product_id: str = "gid://shopify/Product/1",
    handle: str = "eye-corrector",
    title: str = "Eye Corrector",
    options: list[dict[str, Any]] | None = None,
    variants: list[dict[str, Any]] | None = None,
    images: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a product node shaped like the Storefront API returns it."""
    if options is None:
        options = [
            {"name": "Size", "values": ["Small", "Gold"]},
            {"name": "Shade", "values": ["Gold", "Pink"]},
        ]
    if variants is None:
        variants = [
            variant_node("v-small-gold", {"Size": "Small", "Shade": "Gold"}),
            variant_node("v-small-pink", {"Size": "Small", "Shade": "Pink"}),
            variant_node("v-gold-gold", {"Size": "Gold", "Shade": "Gold"}, amount="30.00"),
            variant_node("v-gold-pink", {"Size": "Gold", "Shade": "Pink"}, amount="32.50"),
        ]
    if images is None:
        images = [
            {"url": "https://cdn.example.com/front.jpg", "altText": "Front"},
            {"url": "https://cdn.example.com/back.jpg", "altText": None},
        ]
    return {
        "id": product_id,
        "title": title,
        "description": "Heat-resistant formula",
        "handle": handle,
        "options": options,
        "variants": {"edges": [{"node": node} for node in variants]},
        "images": {"edges": [{"node": node} for node in images]},
    }


def build_product(**kwargs: Any) -> Product:
    node = product_node(**kwargs)
    return Product(
        id=node["id"],
        title=node["title"],
        description=node["description"],
        handle=node["handle"],
        options=node["options"],
        variants=[edge["node"] for edge in node["variants"]["edges"]],
        images=[edge["node"] for edge in node["images"]["edges"]],
    )


@pytest.fixture
def product() -> Product:
    """Product whose Size and Shade options share the value "Gold"."""
    return build_product()


@pytest.fixture
def cart_file(tmp_path) -> str:
    return str(tmp_path / "cart.json")


@pytest.fixture
def storage(cart_file) -> CartStorage:
    return CartStorage(cart_file)


@pytest.fixture
def store(storage) -> CartStore:
    return CartStore(storage)


GraphQLHandler = Callable[[dict[str, Any]], httpx.Response]


def make_client(handler: GraphQLHandler) -> StorefrontClient:
    """Storefront client whose requests are answered by handler(request body)."""

    def transport_handler(request: httpx.Request) -> httpx.Response:
        return handler(json.loads(request.content))

    return StorefrontClient(
        "krale-test.myshopify.com",
        "test-token",
        transport=httpx.MockTransport(transport_handler),
    )
