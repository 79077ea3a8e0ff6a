"""Exceptions raised by the storefront core."""


class StorefrontError(Exception):
    """Base class for storefront errors."""


class FetchError(StorefrontError):
    """The storefront API could not be reached or returned an unusable payload.

    Retryable from the shopper's point of view.
    """


class ProductNotFound(StorefrontError):
    """The storefront answered, but no product exists for the handle."""

    def __init__(self, handle: str) -> None:
        super().__init__(f"Product not found: {handle}")
        self.handle = handle


class NoMatchingVariant(StorefrontError):
    """No variant matches a full option selection."""

    def __init__(self, selections: dict[str, str]) -> None:
        pairs = ", ".join(f"{name}={value}" for name, value in selections.items())
        super().__init__(f"No variant available for {pairs}")
        self.selections = dict(selections)


class InvalidCartOperation(StorefrontError):
    """A cart mutation was rejected and the cart left unchanged."""


class PersistenceError(StorefrontError):
    """The cart could not be written to durable storage."""
