"""Money parsing and fixed-point helpers.

All amounts are ``Decimal`` with two decimal places. Floats are accepted
only through their string form so that 0.1 stays 0.1.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

CURRENCY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest magnitude a stored amount may take; balances are NUMERIC(14, 2)
MAX_AMOUNT = Decimal("999999999999.99")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert a value to a two-place Decimal without losing precision.

    Raises:
        ValueError: If the value is not a finite number, carries
            fractions of a cent or exceeds MAX_AMOUNT
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not an amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"Amount {value} exceeds the maximum of {MAX_AMOUNT}")
    try:
        quantized = amount.quantize(CURRENCY_QUANTUM)
    except InvalidOperation:
        raise ValueError(f"Not an amount: {value!r}")
    if quantized != amount:
        raise ValueError(f"Amount {amount} has more than two decimal places")
    return quantized


def round_money(value: Decimal) -> Decimal:
    """Round a computed amount (e.g. a tax) half-up to whole cents."""
    return value.quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)


def parse_amount(amount_str: str) -> Decimal:
    """Parse a user-entered amount string.

    Handles "123.45", "$123.45", "-$1,234.56" and "(123.45)" (negative).

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    is_negative = text.startswith("(") and text.endswith(")")
    if is_negative:
        text = text[1:-1]

    text = re.sub(r"[$€£¥,\s]", "", text)
    amount = to_money(text)
    return -amount if is_negative else amount
