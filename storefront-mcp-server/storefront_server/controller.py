"""Page controllers tying the storefront client, variant resolution and cart together."""

import logging
from enum import Enum
from typing import Hashable, Optional

from pydantic import BaseModel, Field

from .cart_store import CartStore
from .errors import FetchError, InvalidCartOperation
from .models import CartUpdate, Product, ProductVariant
from .storefront_client import MAX_PAGE_SIZE, StorefrontClient
from .variants import default_selections, find_variant_index, merge_selection

logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    """Loading state of a page."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    NOT_FOUND = "not_found"
    ERROR = "error"


class RequestGuard:
    """
    Tracks the newest request so that superseded responses can be dropped.

    Each request is keyed by its target (handle, page size) and a generation
    number; only the last issued request is current.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._target: Optional[Hashable] = None

    def begin(self, target: Hashable) -> tuple[int, Hashable]:
        self._generation += 1
        self._target = target
        return self._generation, target

    def is_current(self, ticket: tuple[int, Hashable]) -> bool:
        generation, target = ticket
        return generation == self._generation and target == self._target


class ProductView(BaseModel):
    """What a product page shows."""

    status: LoadStatus
    handle: Optional[str] = None
    product: Optional[Product] = None
    selected_image_index: int = 0
    selected_variant_index: int = 0
    selections: dict[str, str] = Field(default_factory=dict)
    variant: Optional[ProductVariant] = None
    available: bool = False
    unavailable_combination: bool = False
    error: Optional[str] = None


class AddToCartResult(BaseModel):
    """Outcome of the add-to-cart action."""

    ok: bool
    message: str
    update: Optional[CartUpdate] = None


class ProductDetailController:
    """State behind a single product page."""

    def __init__(self, client: StorefrontClient, cart_store: CartStore) -> None:
        self.client = client
        self.cart_store = cart_store
        self._guard = RequestGuard()
        self.status = LoadStatus.IDLE
        self.handle: Optional[str] = None
        self.product: Optional[Product] = None
        self.selections: dict[str, str] = {}
        self.error: Optional[str] = None
        self._reset(None)

    def _reset(self, product: Optional[Product]) -> None:
        self.product = product
        self.selected_image_index = 0
        self.selected_variant_index = 0
        self.unavailable_combination = False
        self.error = None
        if product is None:
            self.selections = {}
            return

        # Unpicked options start at their first allowed value
        self.selections = default_selections(product)
        index = find_variant_index(product, self.selections)
        if index is None:
            self.unavailable_combination = True
        else:
            self.selected_variant_index = index

    async def load(self, handle: str) -> ProductView:
        """
        Load the product for a handle.

        Selection state is reset for every new product. If another load starts
        before this one returns, this response is discarded.
        """
        if not handle:
            raise ValueError("handle must not be empty")

        ticket = self._guard.begin(handle)
        self.handle = handle
        self.status = LoadStatus.LOADING
        self._reset(None)

        try:
            product = await self.client.fetch_product_by_handle(handle)
        except FetchError as e:
            if self._guard.is_current(ticket):
                logger.error(f"Could not load product {handle}: {e}")
                self.status = LoadStatus.ERROR
                self.error = str(e)
            return self.view()

        if not self._guard.is_current(ticket):
            logger.info(f"Discarding stale response for {handle}")
            return self.view()

        if product is None:
            self.status = LoadStatus.NOT_FOUND
            self.error = "This product doesn't exist or has been removed."
        else:
            self._reset(product)
            self.status = LoadStatus.LOADED
        return self.view()

    @property
    def current_variant(self) -> Optional[ProductVariant]:
        """The resolved variant, or None for an unavailable combination."""
        if self.product is None or self.unavailable_combination:
            return None
        if not 0 <= self.selected_variant_index < len(self.product.variants):
            return None
        return self.product.variants[self.selected_variant_index]

    @property
    def can_add_to_cart(self) -> bool:
        variant = self.current_variant
        return variant is not None and variant.available_for_sale

    def select_image(self, index: int) -> None:
        """Select an image by position."""
        if self.product is None:
            raise ValueError("No product loaded")
        if not 0 <= index < len(self.product.images):
            raise ValueError(f"Image index out of range: {index}")
        self.selected_image_index = index

    def select_option(self, name: str, value: str) -> bool:
        """
        Apply an option click.

        The selected variant only changes when the new combination exists.
        Otherwise the previous variant index is kept and the page is flagged
        as an unavailable combination.

        Returns:
            True if the combination resolved to a variant
        """
        if self.product is None:
            raise ValueError("No product loaded")

        self.selections = merge_selection(self.product, self.selections, name, value)
        index = find_variant_index(self.product, self.selections)
        if index is None:
            logger.info(f"No variant for {self.selections} on {self.product.id}")
            self.unavailable_combination = True
            return False

        self.selected_variant_index = index
        self.unavailable_combination = False
        return True

    def add_to_cart(self, quantity: int = 1) -> AddToCartResult:
        """Add the resolved variant to the cart, if it can be bought."""
        variant = self.current_variant
        if self.product is None or variant is None:
            return AddToCartResult(ok=False, message="This combination is unavailable")
        if not variant.available_for_sale:
            return AddToCartResult(ok=False, message="Out of stock")

        try:
            update = self.cart_store.add_item(variant, self.product, quantity)
        except InvalidCartOperation as e:
            return AddToCartResult(ok=False, message=str(e))

        return AddToCartResult(
            ok=True,
            message=f"{self.product.title} has been added to your cart.",
            update=update,
        )

    def view(self) -> ProductView:
        variant = self.current_variant
        return ProductView(
            status=self.status,
            handle=self.handle,
            product=self.product,
            selected_image_index=self.selected_image_index,
            selected_variant_index=self.selected_variant_index,
            selections=dict(self.selections),
            variant=variant,
            available=self.can_add_to_cart,
            unavailable_combination=self.unavailable_combination,
            error=self.error,
        )


class CatalogView(BaseModel):
    """What the product grid shows."""

    status: LoadStatus
    products: list[Product] = Field(default_factory=list)
    error: Optional[str] = None


class CatalogController:
    """State behind the product grid."""

    def __init__(self, client: StorefrontClient) -> None:
        self.client = client
        self._guard = RequestGuard()
        self.status = LoadStatus.IDLE
        self.products: list[Product] = []
        self.error: Optional[str] = None

    async def load(self, page_size: int = 20) -> CatalogView:
        """Load a page of products, discarding superseded responses."""
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        ticket = self._guard.begin(page_size)
        self.status = LoadStatus.LOADING
        self.error = None

        try:
            products = await self.client.fetch_catalog(page_size)
        except FetchError as e:
            if self._guard.is_current(ticket):
                logger.error(f"Could not load catalog: {e}")
                self.status = LoadStatus.ERROR
                self.error = "Error loading products. Please try again."
            return self.view()

        if not self._guard.is_current(ticket):
            logger.info(f"Discarding stale catalog response (page size {page_size})")
            return self.view()

        self.products = products
        self.status = LoadStatus.LOADED if products else LoadStatus.EMPTY
        return self.view()

    def view(self) -> CatalogView:
        return CatalogView(status=self.status, products=list(self.products), error=self.error)

