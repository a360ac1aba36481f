"""
fixed_point.py - Checked fixed-point arithmetic

Python ints never overflow, but the protocol stores amounts in fixed-width
integers. These helpers enforce those widths so that an out-of-range value
surfaces as FixedPointOverflow instead of silently growing:

    uint128  unsigned amounts (results of every sizing calculation)
    int256   signed amounts (balances, net available figures)
    uint256  intermediate products before division

All division is floor division on non-negative operands, so rounding always
truncates toward zero.

Conversions to and from Decimal are provided for building inputs from
human-readable ratios and for displaying results.
"""

from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Union

from .core import (
    DECIMALS, UINT128_MAX, UINT256_MAX, INT256_MAX, INT256_MIN,
    FixedPointOverflow,
)


def _require_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"fixed-point operand must be an int, got {type(value).__name__}")
    return value


def to_uint128(value: int) -> int:
    """Return value unchanged if it fits in uint128, else raise FixedPointOverflow."""
    _require_int(value)
    if value < 0:
        raise FixedPointOverflow(f"uint128 underflow: {value}")
    if value > UINT128_MAX:
        raise FixedPointOverflow(f"uint128 overflow: {value}")
    return value


def to_uint256(value: int) -> int:
    """Return value unchanged if it fits in uint256, else raise FixedPointOverflow."""
    _require_int(value)
    if value < 0:
        raise FixedPointOverflow(f"uint256 underflow: {value}")
    if value > UINT256_MAX:
        raise FixedPointOverflow(f"uint256 overflow: {value}")
    return value


def to_int256(value: int) -> int:
    """Return value unchanged if it fits in int256, else raise FixedPointOverflow."""
    _require_int(value)
    if value < INT256_MIN or value > INT256_MAX:
        raise FixedPointOverflow(f"int256 overflow: {value}")
    return value


def checked_mul(a: int, b: int) -> int:
    """Multiply two non-negative values, keeping the product inside uint256."""
    return to_uint256(to_uint256(a) * to_uint256(b))


def checked_div(a: int, b: int) -> int:
    """Floor-divide two non-negative values."""
    to_uint256(a)
    if to_uint256(b) == 0:
        raise FixedPointOverflow("division by zero")
    return a // b


def checked_sub(a: int, b: int) -> int:
    """Unsigned subtraction; raises FixedPointOverflow if b > a."""
    to_uint256(a)
    to_uint256(b)
    if b > a:
        raise FixedPointOverflow(f"subtraction underflow: {a} - {b}")
    return a - b


def mul_div(a: int, b: int, c: int) -> int:
    """
    Compute floor(a * b / c) with a uint256 intermediate.

    The multiplication happens before the division so no precision is lost
    to an early truncation.

    Raises:
        FixedPointOverflow: if an operand is negative, the product exceeds
            uint256, or c is zero.
    """
    return checked_div(checked_mul(a, b), c)


def to_fixed(value: Union[Decimal, str, int], decimals: int = DECIMALS) -> int:
    """
    Convert a human-readable number to a fixed-point int.

    Truncates toward zero beyond the precision of `decimals`.

    Example:
        to_fixed("1.06")          # 1_060_000_000_000_000_000
        to_fixed(Decimal("100"), 10 ** 6)   # 100_000_000
    """
    if isinstance(value, float):
        raise TypeError("float values are not accepted; pass a Decimal or str")
    if isinstance(value, bool):
        raise TypeError("bool is not a number")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        raise ValueError(f"value must be finite, got {value}")
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = (value * decimals).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


def from_fixed(amount: int, decimals: int = DECIMALS) -> Decimal:
    """Convert a fixed-point int back to an exact Decimal."""
    _require_int(amount)
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(amount) / Decimal(decimals)
