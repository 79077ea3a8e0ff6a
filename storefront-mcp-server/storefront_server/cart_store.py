"""Process-wide shopping cart state."""

import logging
import threading
from typing import Callable, Optional

from .errors import InvalidCartOperation, PersistenceError
from .models import (
    Cart,
    CartTotals,
    CartUpdate,
    LineItem,
    Product,
    ProductSnapshot,
    ProductVariant,
)
from .storage import CartSnapshot, CartStorage

logger = logging.getLogger(__name__)

CartObserver = Callable[[Cart], None]


class CartStore:
    """
    Single source of truth for the cart contents.

    Every successful mutation persists the full cart, then notifies the
    observers synchronously, before returning. Lines are keyed by variant ID;
    a variant appears at most once.
    Observers must not change the cart from their callback.
    """

    def __init__(self, storage: CartStorage) -> None:
        """
        Initialize the store from storage.

        Args:
            storage: Durable storage the cart is loaded from and saved to
        """
        self.storage = storage
        self._lock = threading.RLock()
        self._observers: list[CartObserver] = []
        self._notifying = False

        snapshot = storage.load()
        self._lines: list[LineItem] = list(snapshot.lines)
        self._revision = snapshot.revision
        self._totals = CartTotals.from_lines(self._lines)
        logger.info(
            f"Cart loaded: {len(self._lines)} line(s), {self._totals.item_count} item(s)"
        )

    @property
    def lines(self) -> list[LineItem]:
        """Current line items, in insertion order."""
        with self._lock:
            return list(self._lines)

    def snapshot(self) -> Cart:
        """Get an immutable snapshot of the cart."""
        with self._lock:
            return Cart(lines=list(self._lines), totals=self._totals)

    def totals(self) -> CartTotals:
        """Get subtotal and item count as of the last completed mutation."""
        with self._lock:
            return self._totals

    def subscribe(self, observer: CartObserver) -> Callable[[], None]:
        """
        Register a callback invoked with the new cart after every mutation.

        Returns:
            A callable that unsubscribes the observer
        """
        with self._lock:
            self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: CartObserver) -> None:
        """Remove an observer. Unknown observers are ignored."""
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _check_not_notifying(self) -> None:
        if self._notifying:
            raise InvalidCartOperation("The cart cannot be changed while observers are notified")

    def _find_index(self, variant_id: str) -> Optional[int]:
        for index, line in enumerate(self._lines):
            if line.variant_id == variant_id:
                return index
        return None

    def _commit(self, lines: list[LineItem]) -> CartUpdate:
        """Apply new lines, persist them and notify observers."""
        self._lines = lines
        self._revision += 1
        self._totals = CartTotals.from_lines(lines)
        cart = Cart(lines=list(lines), totals=self._totals)

        warning = None
        try:
            self.storage.save(CartSnapshot(revision=self._revision, lines=lines))
        except PersistenceError as e:
            logger.warning(f"Cart changed but was not saved: {e}")
            warning = str(e)

        self._notifying = True
        try:
            for observer in list(self._observers):
                try:
                    observer(cart)
                except Exception as e:
                    logger.error(f"Cart observer failed: {e}", exc_info=True)
        finally:
            self._notifying = False

        return CartUpdate(cart=cart, warning=warning)

    def add_item(
        self, variant: ProductVariant, product: Product, quantity: int = 1
    ) -> CartUpdate:
        """
        Add a variant to the cart.

        Adding a variant that is already in the cart increases its quantity.

        Args:
            variant: Variant to add
            product: Product the variant belongs to
            quantity: Quantity to add (default: 1)

        Raises:
            InvalidCartOperation: If quantity is below 1 or the variant is not for sale
        """
        if quantity < 1:
            raise InvalidCartOperation(f"Quantity must be at least 1, got {quantity}")
        if not variant.available_for_sale:
            raise InvalidCartOperation(f"Variant {variant.id} is not available for sale")

        with self._lock:
            self._check_not_notifying()
            lines = list(self._lines)
            index = self._find_index(variant.id)
            if index is not None:
                existing = lines[index]
                lines[index] = existing.model_copy(
                    update={"quantity": existing.quantity + quantity}
                )
                logger.info(
                    f"Increased {variant.id} to quantity {lines[index].quantity}"
                )
            else:
                lines.append(
                    LineItem(
                        variant_id=variant.id,
                        product=ProductSnapshot.from_product(product),
                        variant_title=variant.title,
                        price=variant.price,
                        selected_options=list(variant.selected_options),
                        quantity=quantity,
                    )
                )
                logger.info(f"Added {variant.id} (quantity: {quantity}) to cart")
            return self._commit(lines)

    def update_quantity(self, variant_id: str, new_quantity: int) -> CartUpdate:
        """
        Set the quantity of a line. A quantity of 0 or less removes it.

        Raises:
            InvalidCartOperation: If the variant is not in the cart
        """
        with self._lock:
            self._check_not_notifying()
            index = self._find_index(variant_id)
            if index is None:
                raise InvalidCartOperation(f"Variant {variant_id} is not in the cart")

            lines = list(self._lines)
            if new_quantity <= 0:
                del lines[index]
                logger.info(f"Removed {variant_id} from cart (quantity {new_quantity})")
            else:
                lines[index] = lines[index].model_copy(update={"quantity": new_quantity})
                logger.info(f"Set {variant_id} to quantity {new_quantity}")
            return self._commit(lines)

    def remove_item(self, variant_id: str) -> CartUpdate:
        """Remove a line. Removing a variant that is not in the cart does nothing."""
        with self._lock:
            self._check_not_notifying()
            index = self._find_index(variant_id)
            if index is None:
                logger.debug(f"Variant {variant_id} not in cart, nothing to remove")
                return CartUpdate(cart=self.snapshot())

            lines = list(self._lines)
            del lines[index]
            logger.info(f"Removed {variant_id} from cart")
            return self._commit(lines)

    def clear(self) -> CartUpdate:
        """Empty the cart."""
        with self._lock:
            self._check_not_notifying()
            logger.info("Clearing cart")
            return self._commit([])

    def complete_checkout(self) -> CartUpdate:
        """Empty the cart once the hosted checkout has been completed."""
        logger.info("Checkout completed")
        return self.clear()


_cart_store: Optional[CartStore] = None
_cart_store_lock = threading.Lock()


def get_cart_store(cart_file: Optional[str] = None) -> CartStore:
    """
    Get the process-wide cart store, loading it from storage on first access.

    Args:
        cart_file: Storage file used when the store is first created
    """
    global _cart_store
    with _cart_store_lock:
        if _cart_store is None:
            _cart_store = CartStore(CartStorage(cart_file))
        return _cart_store
