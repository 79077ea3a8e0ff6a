"""Map option selections to product variants.

Matching is always done on (option name, value) pairs. Two options may share a
value string, e.g. a "Size" of "Gold" and a "Shade" of "Gold", so a value alone
never identifies a variant.
"""

from typing import Mapping, Optional

from .errors import NoMatchingVariant
from .models import Product, ProductVariant

Selections = Mapping[str, str]


def selections_for_variant(variant: ProductVariant) -> dict[str, str]:
    """Return the option selections a variant stands for."""
    return {pair.name: pair.value for pair in variant.selected_options}


def default_selections(product: Product) -> dict[str, str]:
    """Select the first allowed value of every option."""
    return {option.name: option.values[0] for option in product.options if option.values}


def complete_selections(product: Product, selections: Selections) -> dict[str, str]:
    """Fill every unselected option with its first allowed value."""
    completed = default_selections(product)
    completed.update(selections)
    return completed


def merge_selection(
    product: Product, current: Selections, name: str, value: str
) -> dict[str, str]:
    """
    Merge a clicked option value into the current selections.

    Args:
        product: Product being configured
        current: Selections made so far, possibly partial
        name: Option name that was clicked
        value: Value that was clicked

    Returns:
        A full selection set, unselected options defaulted to their first value

    Raises:
        ValueError: If the product has no such option or value
    """
    option = product.get_option(name)
    if option is None:
        raise ValueError(f"Unknown option: {name}")
    if value not in option.values:
        raise ValueError(f"Unknown value {value!r} for option {name}")

    merged = dict(current)
    merged[name] = value
    return complete_selections(product, merged)


def find_variant_index(product: Product, selections: Selections) -> Optional[int]:
    """
    Find the variant whose option pairs equal the selections exactly.

    Partial selections never match; callers complete them first.

    Returns:
        Index into product.variants, or None when no variant matches
    """
    wanted = dict(selections)
    for index, variant in enumerate(product.variants):
        if selections_for_variant(variant) == wanted:
            return index
    return None


def resolve_variant(product: Product, selections: Selections) -> ProductVariant:
    """Return the variant matching the selections, raising NoMatchingVariant."""
    index = find_variant_index(product, selections)
    if index is None:
        raise NoMatchingVariant(dict(selections))
    return product.variants[index]
