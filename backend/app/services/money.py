"""
Currency arithmetic
Project: JobQuote (Quote & Invoice Backend)

Fixed-point amounts (Decimal, 2 digits, round half up) and GST.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from app.core.exceptions import InvalidRateError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
DEFAULT_TAX_RATE = Decimal("0.10")
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

Amount = Union[Decimal, int, str, float]


def to_decimal(amount: Amount) -> Decimal:
    """
    Convert an amount to Decimal.

    Floats go through str() so that 0.1 becomes Decimal("0.1") and not
    its binary approximation.
    """
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def round2(amount: Amount) -> Decimal:
    """
    Round an amount to cents using round half up.

    Args:
        amount: Amount to round

    Returns:
        Decimal with exactly 2 fractional digits

    Example:
        >>> round2("2.675")
        Decimal('2.68')
    """
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_tax(
    subtotal: Amount,
    rate: Amount = DEFAULT_TAX_RATE,
    enabled: bool = True,
) -> Decimal:
    """
    Compute GST on a subtotal.

    Args:
        subtotal: Taxable amount
        rate: Tax rate as a fraction (0.10 = 10%)
        enabled: Whether tax applies

    Returns:
        round2(subtotal * rate) when enabled, otherwise 0.00

    Raises:
        InvalidRateError: If rate is negative
    """
    rate = to_decimal(rate)
    if rate < 0:
        raise InvalidRateError(f"Tax rate must not be negative (got {rate})")
    if not enabled:
        return ZERO
    return round2(to_decimal(subtotal) * rate)
