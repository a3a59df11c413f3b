"""Decimal helpers for money amounts."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Quantize ``value`` to cents, half-up. ``None`` is zero.

    Floats go through ``str`` so SQL aggregates returned as floats (SQLite)
    do not drag binary noise into the result.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"not a money amount: {value!r}") from exc


# Largest amount a Numeric(10, 2) column holds
MAX_MONEY = Decimal("99999999.99")


def fits_money_column(value: Decimal) -> bool:
    return abs(value) <= MAX_MONEY
