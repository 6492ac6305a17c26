"""
Cross-leg consistency rules for a two-leg swap.

Pure function of the proposed legs; no reference-data lookups.  Every
applicable error is collected, except that a wrong leg count stops the
check immediately (the pairwise rules are meaningless without a pair).
"""

from __future__ import annotations

from collections.abc import Sequence

from trade_kernel.domain.dtos import TradeLegInput
from trade_kernel.domain.schedule import is_fixed_leg, is_floating_leg
from trade_kernel.domain.validation import ValidationResult

LEG_COUNT_ERROR = "A trade must contain exactly two legs."
PAY_RECEIVE_ERROR = (
    "Cross-leg inconsistency: Both legs must have opposite Pay/Receive flags "
    "(e.g., PAY vs. RECEIVE)."
)
NOTIONAL_ERROR = "Cross-leg inconsistency: Notional values must be identical across both legs."
CURRENCY_ERROR = (
    "Cross-leg inconsistency: Currency must be identical across both legs "
    "for a standard swap."
)
MISSING_CASHFLOWS_ERROR = (
    "Cashflows must be provided on both legs to determine implicit maturity."
)
IMPLICIT_MATURITY_ERROR = (
    "Implicit Maturity Date (last cashflow value date) must be identical "
    "across both legs."
)


def _normalized(code: str | None) -> str | None:
    if code is None or not code.strip():
        return None
    return code.strip().upper()


def _check_leg_type(leg: TradeLegInput, label: str, result: ValidationResult) -> None:
    if is_floating_leg(leg.leg_type):
        if not leg.index.is_set:
            result.add_error(
                f"{label}: Floating leg missing required index specification (Name or ID)."
            )
    elif is_fixed_leg(leg.leg_type):
        if leg.rate is None:
            result.add_error(f"{label}: Fixed leg missing required rate specification.")


def _check_implicit_maturity(
    first: TradeLegInput,
    second: TradeLegInput,
    result: ValidationResult,
) -> None:
    # Only legs submitted with explicit cashflows carry an implicit maturity.
    if not first.cashflows and not second.cashflows:
        return
    first_maturity = first.implicit_maturity
    second_maturity = second.implicit_maturity
    if first_maturity is None or second_maturity is None:
        result.add_error(MISSING_CASHFLOWS_ERROR)
    elif first_maturity != second_maturity:
        result.add_error(IMPLICIT_MATURITY_ERROR)


def check_leg_consistency(legs: Sequence[TradeLegInput] | None) -> ValidationResult:
    """Validate the pair of legs; see module docstring for the rule set."""
    result = ValidationResult()

    if legs is None or len(legs) != 2:
        result.add_error(LEG_COUNT_ERROR)
        return result

    first, second = legs[0], legs[1]

    flag1 = _normalized(first.pay_receive_flag)
    flag2 = _normalized(second.pay_receive_flag)
    if flag1 is None or flag2 is None or flag1 == flag2:
        result.add_error(PAY_RECEIVE_ERROR)

    if (
        first.notional is None
        or second.notional is None
        or first.notional != second.notional
    ):
        result.add_error(NOTIONAL_ERROR)

    currency1 = _normalized(first.currency)
    currency2 = _normalized(second.currency)
    if currency1 is None or currency2 is None or currency1 != currency2:
        result.add_error(CURRENCY_ERROR)

    _check_leg_type(first, "Leg 1", result)
    _check_leg_type(second, "Leg 2", result)

    _check_implicit_maturity(first, second, result)

    return result
