"""Shopify Storefront API client."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from .config import DEFAULT_API_VERSION
from .errors import FetchError, ProductNotFound
from .models import Checkout, LineItem, Product, ProductImage, ProductOption, ProductVariant

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 250

PRODUCT_FIELDS = """
  id
  title
  description
  handle
  images(first: 5) {
    edges {
      node {
        url
        altText
      }
    }
  }
  variants(first: 100) {
    edges {
      node {
        id
        title
        price {
          amount
          currencyCode
        }
        availableForSale
        selectedOptions {
          name
          value
        }
      }
    }
  }
  options {
    name
    values
  }
"""

STOREFRONT_QUERY = f"""
query GetProducts($first: Int!) {{
  products(first: $first) {{
    edges {{
      node {{{PRODUCT_FIELDS}      }}
    }}
  }}
}}
"""

PRODUCT_BY_HANDLE_QUERY = f"""
query GetProductByHandle($handle: String!) {{
  productByHandle(handle: $handle) {{{PRODUCT_FIELDS}  }}
}}
"""

CART_CREATE_MUTATION = """
mutation cartCreate($input: CartInput!) {
  cartCreate(input: $input) {
    cart {
      id
      checkoutUrl
    }
    userErrors {
      field
      message
    }
  }
}
"""


class StorefrontClient:
    """Client for the Shopify Storefront GraphQL API."""

    def __init__(
        self,
        store_domain: Optional[str],
        storefront_token: Optional[str],
        api_version: str = DEFAULT_API_VERSION,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the storefront client.

        Args:
            store_domain: Shop domain, e.g. my-shop.myshopify.com
            storefront_token: Storefront API access token
            api_version: Storefront API version
            transport: Optional httpx transport, used to stub the network
        """
        self.store_domain = store_domain
        self.api_version = api_version
        headers = {"Content-Type": "application/json"}
        if storefront_token:
            headers["X-Shopify-Storefront-Access-Token"] = storefront_token
        self.client = httpx.AsyncClient(
            timeout=30.0,
            headers=headers,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"https://{self.store_domain}/api/{self.api_version}/graphql.json"

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """
        Send a GraphQL query and return its data object.

        Raises:
            FetchError: On transport failure, HTTP errors, GraphQL errors or a
                body without a data object
        """
        if not self.store_domain:
            raise FetchError("Storefront is not configured (SHOPIFY_STORE_DOMAIN is not set)")

        try:
            response = await self.client.post(
                self.endpoint,
                json={"query": query, "variables": variables},
            )
        except httpx.HTTPError as e:
            logger.error(f"Storefront request failed: {e}")
            raise FetchError(f"Could not reach the storefront: {e}") from e

        logger.info(f"Storefront response: status={response.status_code}")

        if response.status_code == 402:
            raise FetchError(
                "Shopify: Payment required. Storefront API access requires an "
                "active Shopify billing plan."
            )
        if not response.is_success:
            raise FetchError(f"HTTP error! status: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError("Storefront returned a response that is not JSON") from e

        if not isinstance(payload, dict):
            raise FetchError("Malformed storefront response")

        errors = payload.get("errors")
        if errors:
            messages = ", ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise FetchError(f"Error calling Shopify: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise FetchError("Malformed storefront response: missing data")
        return data

    def _parse_product(self, node: Any) -> Product:
        """
        Flatten a product node into a Product.

        Raises:
            FetchError: If any expected field is missing or has the wrong shape
        """
        try:
            return Product(
                id=node["id"],
                title=node["title"],
                description=node.get("description"),
                handle=node.get("handle"),
                options=[ProductOption.model_validate(option) for option in node["options"]],
                variants=[
                    ProductVariant.model_validate(edge["node"])
                    for edge in node["variants"]["edges"]
                ],
                images=[
                    ProductImage.model_validate(edge["node"])
                    for edge in node["images"]["edges"]
                ],
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.error(f"Malformed product payload: {e}")
            raise FetchError(f"Malformed product data: {e}") from e

    async def fetch_catalog(self, page_size: int = 20) -> list[Product]:
        """
        Fetch the first page of the catalog.

        Args:
            page_size: Number of products to fetch (1 to 250)

        Returns:
            Products in storefront order

        Raises:
            ValueError: If page_size is out of range
            FetchError: If the catalog could not be loaded
        """
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        logger.info(f"Fetching catalog (first {page_size})")
        data = await self._request(STOREFRONT_QUERY, {"first": page_size})

        try:
            edges = data["products"]["edges"]
            nodes = [edge["node"] for edge in edges]
        except (KeyError, TypeError) as e:
            raise FetchError(f"Malformed catalog data: {e}") from e

        products = [self._parse_product(node) for node in nodes]
        logger.info(f"Found {len(products)} products")
        return products

    async def fetch_product_by_handle(self, handle: str) -> Optional[Product]:
        """
        Fetch a single product.

        Returns:
            The product, or None when no product has this handle

        Raises:
            ValueError: If handle is empty
            FetchError: If the product could not be loaded
        """
        if not handle:
            raise ValueError("handle must not be empty")

        logger.info(f"Fetching product: {handle}")
        data = await self._request(PRODUCT_BY_HANDLE_QUERY, {"handle": handle})

        if "productByHandle" not in data:
            raise FetchError("Malformed product response: missing productByHandle")
        node = data["productByHandle"]
        if node is None:
            logger.info(f"No product for handle: {handle}")
            return None
        return self._parse_product(node)

    async def get_product(self, handle: str) -> Product:
        """Fetch a single product, raising ProductNotFound when it does not exist."""
        product = await self.fetch_product_by_handle(handle)
        if product is None:
            raise ProductNotFound(handle)
        return product

    async def create_checkout(self, lines: list[LineItem]) -> Checkout:
        """
        Create a hosted checkout for the given cart lines.

        Returns:
            Checkout with the URL the shopper completes payment at

        Raises:
            ValueError: If there are no lines
            FetchError: If the checkout could not be created
        """
        if not lines:
            raise ValueError("Cannot check out an empty cart")

        logger.info(f"Creating checkout for {len(lines)} line(s)")
        data = await self._request(
            CART_CREATE_MUTATION,
            {
                "input": {
                    "lines": [
                        {"quantity": line.quantity, "merchandiseId": line.variant_id}
                        for line in lines
                    ]
                }
            },
        )

        try:
            result = data["cartCreate"]
            user_errors = result.get("userErrors") or []
            if user_errors:
                messages = ", ".join(error["message"] for error in user_errors)
                raise FetchError(f"Cart creation failed: {messages}")
            cart = result["cart"]
            checkout_url = httpx.URL(cart["checkoutUrl"]).copy_merge_params(
                {"channel": "online_store"}
            )
            return Checkout(cart_id=cart["id"], checkout_url=str(checkout_url))
        except (KeyError, TypeError, AttributeError, httpx.InvalidURL) as e:
            raise FetchError(f"Malformed checkout response: {e}") from e
