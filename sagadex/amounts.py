"""Conversion between human-decimal token quantities and ledger units.

The ledger stores every amount as an unsigned integer scaled by
10**decimals. Conversions here are exact: excess fractional digits are
truncated (never rounded up) and formatting back to a string round-trips
for every value the ledger can hold.

Usage:
    from sagadex.amounts import to_ledger_units, from_ledger_units

    units = to_ledger_units("1.5")      # 1500000000000000000
    text = from_ledger_units(units)     # "1.5"
"""

from __future__ import annotations

import decimal
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from sagadex.constants import TOKEN_DECIMALS, UINT256_MAX
from sagadex.errors import InvalidAmount


# Wide enough for uint256 values (up to ~10^77) with 18 fractional digits
DECIMAL_HIGH_PREC_CONTEXT = decimal.Context(prec=100, rounding=ROUND_DOWN)


def _as_decimal(value: str | int | Decimal) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidAmount("Amount is empty")
        try:
            return Decimal(text)
        except InvalidOperation as err:
            raise InvalidAmount(f"Amount is not a decimal number: '{value}'") from err
    raise InvalidAmount(f"Amount must be str, int or Decimal, got {type(value).__name__}")


def to_ledger_units(value: str | int | Decimal, decimals: int = TOKEN_DECIMALS) -> int:
    """Scale a human-decimal amount to integer ledger units.

    Args:
        value: Decimal amount as entered by the user ("1.25", 3, Decimal("0.1"))
        decimals: Number of fractional digits the token uses on the ledger

    Returns:
        Integer amount in ledger units

    Raises:
        InvalidAmount: If the value is not a finite, non-negative decimal or
            does not fit in uint256 after scaling
    """
    amount = _as_decimal(value)
    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite: '{value}'")
    if amount < 0:
        raise InvalidAmount(f"Amount cannot be negative: '{value}'")
    if amount and amount.adjusted() + decimals > 78:
        raise InvalidAmount(f"Amount overflows uint256: '{value}'")

    with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
        scaled = amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)

    units = int(scaled)
    if units > UINT256_MAX:
        raise InvalidAmount(f"Amount overflows uint256: '{value}'")
    return units


def to_decimal(units: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """Scale integer ledger units to an exact Decimal.

    Raises:
        InvalidAmount: If units is negative or not an integer
    """
    if isinstance(units, bool) or not isinstance(units, int):
        raise InvalidAmount(f"Ledger amount must be int, got {type(units).__name__}")
    if units < 0:
        raise InvalidAmount(f"Ledger amount cannot be negative: {units}")

    with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
        return Decimal(units).scaleb(-decimals)


def format_decimal(amount: Decimal) -> str:
    """Render a Decimal without exponent or trailing fractional zeros."""
    text = f"{amount:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def from_ledger_units(units: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Format integer ledger units as a canonical decimal string.

    Canonical form has no exponent, no trailing fractional zeros and no
    trailing dot, so from_ledger_units(to_ledger_units(x)) == x for any x
    already in canonical form.

    Raises:
        InvalidAmount: If units is negative or not an integer
    """
    return format_decimal(to_decimal(units, decimals))


__all__ = [
    "DECIMAL_HIGH_PREC_CONTEXT",
    "to_ledger_units",
    "to_decimal",
    "format_decimal",
    "from_ledger_units",
]
