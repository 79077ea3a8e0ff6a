"""Data models for storefront entities."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Money(BaseModel):
    """An amount in a given currency."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    amount: Decimal = Field(description="Decimal amount")
    currency_code: str = Field(alias="currencyCode", description="ISO 4217 currency code")


class ProductOption(BaseModel):
    """A named customization axis, e.g. "Shade", with its allowed values."""

    model_config = ConfigDict(frozen=True)

    name: str
    values: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_values(self) -> "ProductOption":
        if len(set(self.values)) != len(self.values):
            raise ValueError(f"Duplicate values in option {self.name!r}")
        return self


class SelectedOption(BaseModel):
    """One (option name, value) pair of a variant."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str


class ProductVariant(BaseModel):
    """One purchasable SKU of a product."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(description="Variant ID")
    title: str = Field(description="Variant title")
    price: Money
    available_for_sale: bool = Field(alias="availableForSale")
    selected_options: list[SelectedOption] = Field(
        default_factory=list, alias="selectedOptions"
    )


class ProductImage(BaseModel):
    """Product image."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str
    alt_text: Optional[str] = Field(None, alias="altText")


class Product(BaseModel):
    """A product as returned by the storefront, immutable for a page view."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Product ID")
    title: str = Field(description="Product title")
    description: Optional[str] = Field(None, description="Plain-text description")
    handle: Optional[str] = Field(None, description="URL handle")
    options: list[ProductOption] = Field(default_factory=list)
    variants: list[ProductVariant] = Field(default_factory=list)
    images: list[ProductImage] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_variant_matrix(self) -> "Product":
        option_names = [option.name for option in self.options]
        if len(set(option_names)) != len(option_names):
            raise ValueError(f"Duplicate option names in product {self.id}")

        seen = set()
        for variant in self.variants:
            names = [pair.name for pair in variant.selected_options]
            if sorted(names) != sorted(option_names):
                raise ValueError(
                    f"Variant {variant.id} must select exactly one value per option"
                )
            combination = frozenset((pair.name, pair.value) for pair in variant.selected_options)
            if combination in seen:
                raise ValueError(f"Variant {variant.id} repeats an option combination")
            seen.add(combination)
        return self

    def get_variant(self, variant_id: str) -> Optional[ProductVariant]:
        """Look up a variant by ID."""
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def get_option(self, name: str) -> Optional[ProductOption]:
        """Look up an option by name."""
        for option in self.options:
            if option.name == name:
                return option
        return None


class ProductSnapshot(BaseModel):
    """Minimal product data a cart line needs to render without a refetch."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    handle: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            title=product.title,
            handle=product.handle,
            image_url=product.images[0].url if product.images else None,
        )


class LineItem(BaseModel):
    """Represents an entry in the shopping cart."""

    model_config = ConfigDict(frozen=True)

    variant_id: str = Field(description="Variant this line refers to")
    product: ProductSnapshot
    variant_title: str
    price: Money = Field(description="Unit price at the time of adding")
    selected_options: list[SelectedOption] = Field(default_factory=list)
    quantity: int = Field(ge=1, description="Quantity of the variant")

    @property
    def line_total(self) -> Decimal:
        return self.price.amount * self.quantity


class CartTotals(BaseModel):
    """Derived cart totals."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal = Field(default=Decimal("0"))
    item_count: int = Field(default=0)
    currency_code: Optional[str] = None

    @classmethod
    def from_lines(cls, lines: list[LineItem]) -> "CartTotals":
        return cls(
            subtotal=sum((line.line_total for line in lines), Decimal("0")),
            item_count=sum(line.quantity for line in lines),
            currency_code=lines[0].price.currency_code if lines else None,
        )


class Cart(BaseModel):
    """Snapshot of the shopping cart."""

    model_config = ConfigDict(frozen=True)

    lines: list[LineItem] = Field(default_factory=list)
    totals: CartTotals = Field(default_factory=CartTotals)

    def get_line(self, variant_id: str) -> Optional[LineItem]:
        for line in self.lines:
            if line.variant_id == variant_id:
                return line
        return None


class CartUpdate(BaseModel):
    """Result of a successful cart mutation."""

    cart: Cart
    warning: Optional[str] = Field(None, description="Set when the cart could not be saved")


class Checkout(BaseModel):
    """Hosted checkout created on the commerce platform."""

    cart_id: str
    checkout_url: str
