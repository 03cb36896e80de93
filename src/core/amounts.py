"""
Conversion between human token quantities and base units.
"""

import math
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from core.errors import InvalidQuantity

# SPL token amounts are u64
MAX_TOKEN_AMOUNT = 2**64 - 1


def check_quantity(quantity: float | int) -> None:
    """Reject anything that is not a finite number greater than zero.

    Raises:
        InvalidQuantity: If quantity is not a positive finite number
    """
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float, Decimal)):
        raise InvalidQuantity("Quantity must be a number", quantity=quantity)
    if isinstance(quantity, float) and not math.isfinite(quantity):
        raise InvalidQuantity("Quantity must be a finite number", quantity=quantity)
    if quantity <= 0:
        raise InvalidQuantity("Quantity must be greater than zero", quantity=quantity)


def to_base_units(quantity: float | int, decimals: int) -> int:
    """Scale a human quantity by 10^decimals, truncating toward zero.

    Decimal arithmetic on the shortest repr of the float keeps values like
    0.29 from landing one base unit short.

    Args:
        quantity: Human-readable token amount
        decimals: Decimal precision of the mint

    Returns:
        Amount in base units

    Raises:
        InvalidQuantity: If quantity is not positive
    """
    check_quantity(quantity)
    try:
        scaled = Decimal(str(quantity)).scaleb(decimals)
    except InvalidOperation as e:
        raise InvalidQuantity(f"Quantity cannot be scaled: {e!s}", quantity=quantity) from e
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def to_positive_base_units(quantity: float | int, decimals: int) -> int:
    """Like to_base_units, but the result must fit a non-zero u64 token amount."""
    amount = to_base_units(quantity, decimals)
    if amount == 0:
        raise InvalidQuantity(
            f"Quantity {quantity} is smaller than one base unit at {decimals} decimals",
            quantity=quantity,
            decimals=decimals,
        )
    if amount > MAX_TOKEN_AMOUNT:
        raise InvalidQuantity(
            f"Quantity {quantity} exceeds the largest token amount at {decimals} decimals",
            quantity=quantity,
            decimals=decimals,
        )
    return amount
