"""
Schedule arithmetic for cashflow generation.

Responsibility:
    Pure functions that turn a calculation-period schedule into a month
    interval, lay out payment dates between start and maturity, and value a
    single period's payment.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The cashflow
    generator service composes these with persistence.

Invariants enforced:
    - Intervals are positive whole months.
    - Payment dates are anchored on the start date: the k-th date is
      start + k * interval months, clamped to month end.  The start date
      itself is never a payment date; maturity is included when it falls
      on the schedule.
    - Fixed payment value = notional * (rate / 100) * interval / 12, with
      the rate fraction and the result each rounded half-up to
      CASHFLOW_DECIMAL_PLACES.

Failure modes:
    - InvalidScheduleError for schedule strings that are neither a known
      alias nor ``<N>M``.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Mapping
from datetime import date
from decimal import Decimal, localcontext

from trade_kernel.db.types import CASHFLOW_DECIMAL_PLACES, round_decimal
from trade_kernel.exceptions import InvalidScheduleError

DEFAULT_INTERVAL_MONTHS = 3

DEFAULT_SCHEDULE_ALIASES: Mapping[str, int] = {
    "monthly": 1,
    "quarterly": 3,
    "semi-annually": 6,
    "semiannually": 6,
    "half-yearly": 6,
    "annually": 12,
    "yearly": 12,
}

FIXED_LEG_TYPE = "fixed"
FLOATING_LEG_TYPES = frozenset({"floating", "float"})

_PERIOD_PATTERN = re.compile(r"^(\d+)\s*[mM]$")

_HUNDRED = Decimal(100)
_MONTHS_PER_YEAR = Decimal(12)


def parse_schedule(
    schedule: str | None,
    aliases: Mapping[str, int] | None = None,
    default_interval: int = DEFAULT_INTERVAL_MONTHS,
) -> int:
    """
    Month interval for a schedule name.

    Args:
        schedule: "Monthly", "Quarterly", "Semi-annually", "Annually" (any
            case, with the usual spelling variants) or "<N>M".  None or
            blank means the default interval.
        aliases: Lower-cased alias table; DEFAULT_SCHEDULE_ALIASES if None.
        default_interval: Interval used when no schedule is set.

    Raises:
        InvalidScheduleError: Unrecognised format, or N is not positive.
    """
    if schedule is None or not schedule.strip():
        return default_interval

    table = DEFAULT_SCHEDULE_ALIASES if aliases is None else aliases
    text = schedule.strip()

    interval = table.get(text.lower())
    if interval is not None:
        return interval

    match = _PERIOD_PATTERN.match(text)
    if match:
        months = int(match.group(1))
        if months > 0:
            return months

    raise InvalidScheduleError(schedule)


def add_months(start: date, months: int) -> date:
    """Calendar month addition, clamped to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def calculate_payment_dates(
    start_date: date,
    maturity_date: date,
    interval_months: int,
) -> list[date]:
    """All payment dates in (start_date, maturity_date], one per interval."""
    if interval_months <= 0:
        raise ValueError(f"interval_months must be positive, got {interval_months}")

    dates: list[date] = []
    step = 1
    current = add_months(start_date, interval_months)
    while current <= maturity_date:
        dates.append(current)
        step += 1
        current = add_months(start_date, interval_months * step)
    return dates


def is_fixed_leg(leg_type: str | None) -> bool:
    return bool(leg_type) and leg_type.strip().lower() == FIXED_LEG_TYPE


def is_floating_leg(leg_type: str | None) -> bool:
    return bool(leg_type) and leg_type.strip().lower() in FLOATING_LEG_TYPES


def calculate_cashflow_value(
    leg_type: str | None,
    notional: Decimal | None,
    rate: Decimal | None,
    interval_months: int,
) -> Decimal:
    """
    Payment value for one period of a leg.

    Fixed legs accrue simple interest for the period fraction of a year.
    Floating legs, and legs of unknown type, are zero until fixed.

    Raises:
        ValueError: Fixed leg without a notional or rate.
    """
    if not is_fixed_leg(leg_type):
        return round_decimal(Decimal(0))

    if notional is None or rate is None:
        raise ValueError("Fixed leg requires both notional and rate")

    with localcontext() as ctx:
        ctx.prec = 60
        rate_fraction = round_decimal(Decimal(rate) / _HUNDRED, CASHFLOW_DECIMAL_PLACES)
        accrual = Decimal(notional) * rate_fraction * Decimal(interval_months)
        return round_decimal(accrual / _MONTHS_PER_YEAR, CASHFLOW_DECIMAL_PLACES)
