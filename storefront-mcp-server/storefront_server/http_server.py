"""HTTP server for the Storefront MCP Server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .cart_store import CartStore, get_cart_store
from .config import StorefrontConfig, load_config
from .controller import CatalogController, LoadStatus, ProductDetailController
from .errors import FetchError, InvalidCartOperation, NoMatchingVariant, ProductNotFound
from .storefront_client import StorefrontClient
from .variants import complete_selections, resolve_variant

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-http-server")

# Global state
config: StorefrontConfig
storefront_client: StorefrontClient
cart_store: CartStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global config, storefront_client, cart_store

    # Startup
    logger.info("Starting Storefront HTTP Server...")
    config = load_config()
    storefront_client = StorefrontClient(
        config.store_domain, config.storefront_token, api_version=config.api_version
    )
    cart_store = get_cart_store(config.cart_file)

    yield

    # Shutdown
    logger.info("Shutting down Storefront HTTP Server...")
    await storefront_client.aclose()


app = FastAPI(
    title="Storefront MCP Server",
    description="HTTP API for browsing a Shopify storefront and managing a cart",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class SelectRequest(BaseModel):
    selections: dict[str, str] = Field(default_factory=dict)
    image_index: Optional[int] = None


class AddToCartRequest(BaseModel):
    handle: str
    variant_id: Optional[str] = None
    selections: dict[str, str] = Field(default_factory=dict)
    quantity: int = 1


class UpdateQuantityRequest(BaseModel):
    variant_id: str
    quantity: int


class RemoveFromCartRequest(BaseModel):
    variant_id: str


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for browsing a Shopify storefront and managing a cart",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "products": {
                "list": "GET /products",
                "get": "GET /products/{handle}",
                "select": "POST /products/{handle}/select",
            },
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "update": "POST /cart/update",
                "remove": "POST /cart/remove",
                "clear": "POST /cart/clear",
                "checkout": "POST /cart/checkout",
                "complete": "POST /cart/checkout/complete",
            },
        },
        "configured": config.is_configured,
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "configured": config.is_configured}


# Product endpoints
@app.get("/products")
async def list_products(page_size: Optional[int] = None):
    """List catalog products."""
    if page_size is None:
        page_size = config.page_size
    if not 1 <= page_size <= 250:
        raise HTTPException(status_code=400, detail="page_size must be between 1 and 250")

    view = await CatalogController(storefront_client).load(page_size)
    if view.status == LoadStatus.ERROR:
        raise HTTPException(status_code=502, detail=view.error)

    return {
        "count": len(view.products),
        "products": [product.model_dump(mode="json") for product in view.products],
    }


async def _load_product_page(handle: str) -> ProductDetailController:
    page = ProductDetailController(storefront_client, cart_store)
    view = await page.load(handle)
    if view.status == LoadStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail=f"Product not found: {handle}")
    if view.status == LoadStatus.ERROR:
        raise HTTPException(status_code=502, detail=view.error)
    return page


@app.get("/products/{handle}")
async def get_product(handle: str):
    """Get a product page with its default variant."""
    page = await _load_product_page(handle)
    return page.view().model_dump(mode="json")


@app.post("/products/{handle}/select")
async def select_options(handle: str, request: SelectRequest):
    """Apply option and image selections and return the resolved variant."""
    page = await _load_product_page(handle)
    try:
        for name, value in request.selections.items():
            page.select_option(name, value)
        if request.image_index is not None:
            page.select_image(request.image_index)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return page.view().model_dump(mode="json")


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Get current shopping cart."""
    return cart_store.snapshot().model_dump(mode="json")


@app.post("/cart/add")
async def add_to_cart(request: AddToCartRequest):
    """Add a product variant to the cart."""
    try:
        product = await storefront_client.get_product(request.handle)

        if request.variant_id:
            variant = product.get_variant(request.variant_id)
            if variant is None:
                raise HTTPException(
                    status_code=404, detail=f"Variant not found: {request.variant_id}"
                )
        else:
            variant = resolve_variant(product, complete_selections(product, request.selections))

        update = cart_store.add_item(variant, product, request.quantity)
        return {
            "success": True,
            "message": f"{product.title} has been added to your cart.",
            "warning": update.warning,
            "cart": update.cart.model_dump(mode="json"),
        }
    except HTTPException:
        raise
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoMatchingVariant as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidCartOperation as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FetchError as e:
        logger.error(f"Add to cart error: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/cart/update")
async def update_cart_quantity(request: UpdateQuantityRequest):
    """Set the quantity of a cart line."""
    try:
        update = cart_store.update_quantity(request.variant_id, request.quantity)
    except InvalidCartOperation as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "warning": update.warning, "cart": update.cart.model_dump(mode="json")}


@app.post("/cart/remove")
async def remove_from_cart(request: RemoveFromCartRequest):
    """Remove a line from the cart."""
    update = cart_store.remove_item(request.variant_id)
    return {"success": True, "warning": update.warning, "cart": update.cart.model_dump(mode="json")}


@app.post("/cart/clear")
async def clear_cart():
    """Empty the cart."""
    update = cart_store.clear()
    return {"success": True, "warning": update.warning, "cart": update.cart.model_dump(mode="json")}


@app.post("/cart/checkout")
async def checkout():
    """Create a hosted checkout for the cart."""
    try:
        result = await storefront_client.create_checkout(cart_store.lines)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FetchError as e:
        logger.error(f"Checkout error: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    return result.model_dump()


@app.post("/cart/checkout/complete")
async def complete_checkout():
    """Empty the cart after a completed checkout."""
    update = cart_store.complete_checkout()
    return {"success": True, "warning": update.warning, "cart": update.cart.model_dump(mode="json")}


def run_http_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()
