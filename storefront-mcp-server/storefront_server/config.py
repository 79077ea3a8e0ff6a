"""Configuration loaded from environment variables."""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2025-07"


class StorefrontConfig(BaseModel):
    """Settings for the storefront server."""

    store_domain: Optional[str] = Field(None, description="Shop domain, e.g. my-shop.myshopify.com")
    storefront_token: Optional[str] = Field(None, description="Storefront API access token")
    api_version: str = Field(default=DEFAULT_API_VERSION)
    cart_file: Optional[str] = Field(None, description="Cart storage file")
    page_size: int = Field(default=20, ge=1, le=250)

    @property
    def is_configured(self) -> bool:
        return bool(self.store_domain and self.storefront_token)


def load_config() -> StorefrontConfig:
    """Build the configuration from SHOPIFY_* and STOREFRONT_* variables."""
    config = StorefrontConfig(
        store_domain=os.environ.get("SHOPIFY_STORE_DOMAIN"),
        storefront_token=os.environ.get("SHOPIFY_STOREFRONT_TOKEN"),
        api_version=os.environ.get("SHOPIFY_API_VERSION", DEFAULT_API_VERSION),
        cart_file=os.environ.get("STOREFRONT_CART_FILE"),
        page_size=int(os.environ.get("STOREFRONT_PAGE_SIZE", "20")),
    )

    if config.is_configured:
        logger.info(f"Storefront configured for: {config.store_domain}")
    else:
        logger.warning(
            "No storefront credentials found in environment variables "
            "(SHOPIFY_STORE_DOMAIN, SHOPIFY_STOREFRONT_TOKEN)"
        )
        logger.warning("Catalog and checkout operations will fail until they are set")

    return config
