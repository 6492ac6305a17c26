"""
Module: trade_kernel.db.types
Responsibility: Annotated type aliases and rounding helpers for trade
    columns.  Centralizes precision and rounding so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Notionals, rates and payment values are Decimal, never float.
    - CASHFLOW_DECIMAL_PLACES is the scale every cashflow value is carried
      to; round_decimal() is the rounding function for trade amounts.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import BigInteger, Numeric, String

# Monetary amount: 38 digits total, 10 decimal places
Money = Annotated[Decimal, Numeric(38, 10)]

# Business trade identifier (stable across versions)
TradeIdentifier = Annotated[int, BigInteger]

# Short identifier strings
ShortCode = Annotated[str, String(50)]


CASHFLOW_DECIMAL_PLACES = 10
SUMMARY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_decimal(
    value: Decimal,
    decimal_places: int = CASHFLOW_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a Decimal to the given number of places (half-up by default).

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode.

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "1." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_decimal(value: Decimal | int | float | str | None) -> Decimal | None:
    """Convert numeric input to Decimal without going through binary float.

    Floats are converted via ``str`` so 3.5 becomes Decimal("3.5"), not its
    binary expansion.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)
