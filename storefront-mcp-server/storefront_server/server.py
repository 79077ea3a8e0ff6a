"""MCP Server for a Shopify storefront."""

import asyncio
import logging
from typing import Any

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from .cart_store import CartStore, get_cart_store
from .config import StorefrontConfig, load_config
from .controller import CatalogController, LoadStatus, ProductDetailController, ProductView
from .errors import FetchError, InvalidCartOperation
from .models import Cart, CartUpdate
from .storefront_client import StorefrontClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-mcp-server")

# Initialize server
app = Server("storefront-mcp-server")

# Global state
config: StorefrontConfig
storefront_client: StorefrontClient
cart_store: CartStore
catalog: CatalogController
product_page: ProductDetailController


def format_cart(cart: Cart) -> str:
    """Render a cart as readable text."""
    if not cart.lines:
        return "Your cart is empty"

    currency = cart.totals.currency_code or ""
    result_lines = [f"Shopping Cart ({cart.totals.item_count} items):\n"]
    for i, line in enumerate(cart.lines, 1):
        result_lines.append(f"\n{i}. {line.product.title} - {line.variant_title}")
        result_lines.append(f"   Variant ID: {line.variant_id}")
        if line.selected_options:
            options = ", ".join(f"{pair.name}: {pair.value}" for pair in line.selected_options)
            result_lines.append(f"   Options: {options}")
        result_lines.append(f"   Price: {line.price.currency_code} {line.price.amount:.2f}")
        result_lines.append(f"   Quantity: {line.quantity}")
        result_lines.append(f"   Subtotal: {line.price.currency_code} {line.line_total:.2f}")

    result_lines.append(f"\n{'='*50}")
    result_lines.append(f"Total: {currency} {cart.totals.subtotal:.2f}")
    return "\n".join(result_lines)


def format_update(message: str, update: CartUpdate) -> str:
    text = f"{message}\n\n{format_cart(update.cart)}"
    if update.warning:
        text += f"\n\nWarning: {update.warning}"
    return text


def format_product(view: ProductView) -> str:
    """Render a product page as readable text."""
    if view.status == LoadStatus.NOT_FOUND:
        return f"Product Not Found: {view.handle}. {view.error}"
    if view.status == LoadStatus.ERROR:
        return f"Couldn't load product {view.handle}: {view.error}"
    if view.product is None:
        return "No product loaded. Use storefront_get_product first."

    product = view.product
    result_lines = [product.title, f"Handle: {product.handle}"]
    if view.variant:
        price = view.variant.price
        result_lines.append(f"Price: {price.currency_code} {price.amount:.2f}")
        result_lines.append(f"Variant: {view.variant.title} ({view.variant.id})")
    if product.description:
        result_lines.append(f"\n{product.description}")

    for option in product.options:
        values = [
            f"[{value}]" if view.selections.get(option.name) == value else value
            for value in option.values
        ]
        result_lines.append(f"\n{option.name}: {' '.join(values)}")

    if product.images:
        image = product.images[view.selected_image_index]
        result_lines.append(
            f"\nImage {view.selected_image_index + 1}/{len(product.images)}: {image.url}"
        )

    if view.unavailable_combination:
        result_lines.append("\nThis combination is unavailable")
    elif view.available:
        result_lines.append("\nAvailable: Yes")
    else:
        result_lines.append("\nAvailable: No (Out of Stock)")

    return "\n".join(result_lines)


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("storefront://cart"),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current shopping cart contents",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    if str(uri) == "storefront://cart":
        return cart_store.snapshot().model_dump_json(indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="storefront_list_products",
            description="List products in the store catalog",
            inputSchema={
                "type": "object",
                "properties": {
                    "page_size": {
                        "type": "integer",
                        "description": "Number of products to list (default: 20)",
                    },
                },
            },
        ),
        Tool(
            name="storefront_get_product",
            description="Open a product by handle, showing its options, price and availability",
            inputSchema={
                "type": "object",
                "properties": {
                    "handle": {
                        "type": "string",
                        "description": "Product handle (from the product list)",
                    },
                },
                "required": ["handle"],
            },
        ),
        Tool(
            name="storefront_select_option",
            description="Choose an option value (e.g. Shade: Light) on the open product",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Option name"},
                    "value": {"type": "string", "description": "Option value"},
                },
                "required": ["name", "value"],
            },
        ),
        Tool(
            name="storefront_select_image",
            description="Show another image of the open product",
            inputSchema={
                "type": "object",
                "properties": {
                    "index": {"type": "integer", "description": "Image position, starting at 0"},
                },
                "required": ["index"],
            },
        ),
        Tool(
            name="storefront_add_to_cart",
            description="Add the selected variant of the open product to the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "quantity": {
                        "type": "integer",
                        "description": "Quantity to add (default: 1)",
                        "default": 1,
                    },
                },
            },
        ),
        Tool(
            name="storefront_get_cart",
            description="Get current shopping cart contents with all items and total",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_update_cart_quantity",
            description="Set the quantity of a cart line (0 removes it)",
            inputSchema={
                "type": "object",
                "properties": {
                    "variant_id": {"type": "string", "description": "Variant ID of the line"},
                    "quantity": {"type": "integer", "description": "New quantity to set"},
                },
                "required": ["variant_id", "quantity"],
            },
        ),
        Tool(
            name="storefront_remove_from_cart",
            description="Remove a line from the shopping cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "variant_id": {"type": "string", "description": "Variant ID to remove"},
                },
                "required": ["variant_id"],
            },
        ),
        Tool(
            name="storefront_clear_cart",
            description="Remove everything from the shopping cart",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_checkout",
            description="Create a hosted checkout for the cart and return its URL",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_complete_checkout",
            description="Empty the cart after the hosted checkout has been paid",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "storefront_list_products":
            page_size = arguments.get("page_size", config.page_size)
            view = await catalog.load(page_size)

            if view.status == LoadStatus.ERROR:
                return [TextContent(type="text", text=f"Error: {view.error}")]
            if not view.products:
                return [
                    TextContent(
                        type="text",
                        text="No Products Found. We're currently setting up our products. Check back soon!",
                    )
                ]

            result_lines = [f"Found {len(view.products)} product(s):\n"]
            for i, product in enumerate(view.products, 1):
                result_lines.append(f"\n{i}. {product.title}")
                result_lines.append(f"   Handle: {product.handle}")
                if product.variants:
                    price = product.variants[0].price
                    result_lines.append(f"   Price: {price.currency_code} {price.amount:.2f}")
                available = any(variant.available_for_sale for variant in product.variants)
                result_lines.append(f"   Available: {'Yes' if available else 'No'}")

            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "storefront_get_product":
            view = await product_page.load(arguments["handle"])
            return [TextContent(type="text", text=format_product(view))]

        elif name == "storefront_select_option":
            product_page.select_option(arguments["name"], arguments["value"])
            return [TextContent(type="text", text=format_product(product_page.view()))]

        elif name == "storefront_select_image":
            product_page.select_image(arguments["index"])
            return [TextContent(type="text", text=format_product(product_page.view()))]

        elif name == "storefront_add_to_cart":
            quantity = arguments.get("quantity", 1)
            result = product_page.add_to_cart(quantity)

            if not result.ok or result.update is None:
                return [TextContent(type="text", text=f"Cannot add to cart: {result.message}")]
            return [TextContent(type="text", text=format_update(result.message, result.update))]

        elif name == "storefront_get_cart":
            return [TextContent(type="text", text=format_cart(cart_store.snapshot()))]

        elif name == "storefront_update_cart_quantity":
            variant_id = arguments["variant_id"]
            quantity = arguments["quantity"]
            update = cart_store.update_quantity(variant_id, quantity)
            return [
                TextContent(
                    type="text",
                    text=format_update(f"Updated {variant_id} to quantity {quantity}", update),
                )
            ]

        elif name == "storefront_remove_from_cart":
            variant_id = arguments["variant_id"]
            update = cart_store.remove_item(variant_id)
            return [
                TextContent(type="text", text=format_update(f"Removed {variant_id} from cart", update))
            ]

        elif name == "storefront_clear_cart":
            update = cart_store.clear()
            return [TextContent(type="text", text=format_update("Cart cleared", update))]

        elif name == "storefront_checkout":
            checkout = await storefront_client.create_checkout(cart_store.lines)
            return [
                TextContent(
                    type="text",
                    text=f"Checkout created. Complete your purchase at:\n{checkout.checkout_url}",
                )
            ]

        elif name == "storefront_complete_checkout":
            update = cart_store.complete_checkout()
            return [TextContent(type="text", text=format_update("Thank you for your order!", update))]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except (FetchError, InvalidCartOperation, ValueError) as e:
        logger.warning(f"Tool {name} rejected: {e}")
        return [TextContent(type="text", text=f"Error: {e}")]
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return [
            TextContent(
                type="text",
                text=f"Error: {str(e)}",
            )
        ]


def init_state() -> None:
    """Create the storefront client, cart store and page controllers."""
    global config, storefront_client, cart_store, catalog, product_page

    config = load_config()
    storefront_client = StorefrontClient(
        config.store_domain, config.storefront_token, api_version=config.api_version
    )
    cart_store = get_cart_store(config.cart_file)
    catalog = CatalogController(storefront_client)
    product_page = ProductDetailController(storefront_client, cart_store)


async def main() -> None:
    """Main entry point for the MCP server."""
    init_state()

    logger.info("Starting Storefront MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await storefront_client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
