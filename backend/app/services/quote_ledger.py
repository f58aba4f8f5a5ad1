"""
Quote line item ledger
Project: JobQuote (Quote & Invoice Backend)

Validates line items and totals them into subtotal, tax and total.

Totals are always recomputed from the whole item list, never maintained
incrementally. Each line is rounded to cents before summing, so the
subtotal equals the sum of the line totals the client sees.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, NamedTuple

from app.core.exceptions import InvalidItemError
from app.schemas.quote import ItemCategory
from app.services.money import DEFAULT_TAX_RATE, MAX_AMOUNT, ZERO, Amount, compute_tax, round2, to_decimal

# Largest value of the Numeric(10, 2) quantity column
MAX_QUANTITY = Decimal("99999999.99")

__all__ = [
    "ItemCategory",
    "QuoteTotals",
    "validate_item",
    "line_total",
    "compute_totals",
]


class QuoteTotals(NamedTuple):
    """Totals of a quote."""
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _field(item: Any, name: str) -> Any:
    # Items come as schemas, ORM rows or plain dicts
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _as_decimal(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return None
    try:
        return to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None


def _category_value(value: Any) -> Any:
    if isinstance(value, ItemCategory):
        return value.value
    return value


def validate_item(item: Any) -> None:
    """
    Validate one line item, fail fast.

    Checks in order: name, quantity, unit price, category, line total.
    Only the first violation is reported. Quantity and unit price must fit
    their stored precision: a quantity that rounds to 0.00 is refused.

    Args:
        item: Object exposing name, quantity, unit_price and category

    Raises:
        InvalidItemError: On the first violated constraint
    """
    name = _field(item, "name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidItemError("Item name is required")

    quantity = _as_decimal(_field(item, "quantity"))
    if quantity is None or not quantity.is_finite() or quantity <= 0:
        raise InvalidItemError("Quantity must be greater than 0")
    if quantity > MAX_QUANTITY:
        raise InvalidItemError("Quantity must be at most 99,999,999.99")
    # Quantities are stored in cents: 0.004 would be saved as 0.00
    if round2(quantity) <= 0:
        raise InvalidItemError("Quantity must be greater than 0")

    unit_price = _as_decimal(_field(item, "unit_price"))
    if unit_price is None or not unit_price.is_finite() or unit_price < 0:
        raise InvalidItemError("Unit price must be 0 or greater")
    if unit_price > MAX_AMOUNT:
        raise InvalidItemError("Unit price must be at most 9,999,999,999.99")

    category = _category_value(_field(item, "category"))
    if not category:
        raise InvalidItemError("Item type is required")
    if category not in {c.value for c in ItemCategory}:
        raise InvalidItemError(f"Unknown item type: {category}")

    if round2(quantity) * round2(unit_price) > MAX_AMOUNT:
        raise InvalidItemError("Line total is too large")


def line_total(item: Any) -> Decimal:
    """Return round2(quantity * unit_price) for an item."""
    return round2(to_decimal(_field(item, "quantity")) * to_decimal(_field(item, "unit_price")))


def compute_totals(
    items: Iterable[Any],
    tax_enabled: bool = True,
    tax_rate: Amount = DEFAULT_TAX_RATE,
) -> QuoteTotals:
    """
    Total a list of line items.

    Pure and idempotent: the same items always give the same totals.

    Args:
        items: Line items (may be empty)
        tax_enabled: Whether GST applies
        tax_rate: GST rate as a fraction

    Returns:
        QuoteTotals(subtotal, tax, total) with total == subtotal + tax

    Raises:
        InvalidRateError: If tax_rate is negative
    """
    subtotal = ZERO
    for item in items:
        subtotal += line_total(item)
    subtotal = round2(subtotal)
    tax = compute_tax(subtotal, tax_rate, tax_enabled)
    return QuoteTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)
