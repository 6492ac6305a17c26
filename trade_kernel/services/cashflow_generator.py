"""
CashflowGenerator -- persists the payment schedule of a trade leg.

Responsibility:
    For one persisted TradeLeg and the trade's start/maturity dates, works
    out the month interval from the leg's calculation-period schedule, lays
    out the payment dates, values each period, and writes one Cashflow row
    per date.

Architecture position:
    Kernel > Services.  The arithmetic lives in domain.schedule; this class
    only reads the leg's reference data and writes rows.

Invariants enforced:
    - Fixed legs: value = notional * (rate / 100) * interval / 12, carried
      to 10 decimal places half-up.  Floating legs: zero.
    - Each cashflow copies the leg's rate, pay/receive flag and payment
      business-day convention at generation time.

Failure modes:
    - InvalidScheduleError for an unrecognised schedule name.

Non-goals:
    - Not idempotent.  Generating twice for the same leg writes a second
      set of rows; callers generate once per new leg.
"""

from datetime import date

from sqlalchemy.orm import Session

from trade_kernel.domain.clock import Clock
from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.domain.schedule import (
    calculate_cashflow_value,
    calculate_payment_dates,
    parse_schedule,
)
from trade_kernel.logging_config import get_logger
from trade_kernel.models.trade import Cashflow, TradeLeg
from trade_kernel.services.base import BaseService

logger = get_logger("services.cashflow_generator")


class CashflowGenerator(BaseService):
    """Writes Cashflow rows for a leg."""

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policy = policy or LifecyclePolicy.standard()

    def interval_for(self, leg: TradeLeg) -> int:
        schedule = leg.calculation_period_schedule
        return parse_schedule(
            schedule.name if schedule is not None else None,
            aliases=self._policy.schedule_aliases,
            default_interval=self._policy.default_interval_months,
        )

    def generate_cashflows(
        self,
        leg: TradeLeg,
        start_date: date,
        maturity_date: date,
    ) -> list[Cashflow]:
        """
        Generate and flush the cashflows for ``leg``.

        Returns:
            The new Cashflow rows in value-date order.
        """
        interval = self.interval_for(leg)
        payment_dates = calculate_payment_dates(start_date, maturity_date, interval)
        leg_type = leg.leg_type.name if leg.leg_type is not None else None
        payment_value = calculate_cashflow_value(
            leg_type, leg.notional, leg.rate, interval
        )
        now = self._clock.now()

        cashflows = []
        for value_date in payment_dates:
            cashflow = Cashflow(
                leg=leg,
                value_date=value_date,
                rate=leg.rate,
                payment_value=payment_value,
                pay_rec=leg.pay_receive_flag,
                payment_business_day_convention=leg.payment_business_day_convention,
                created_date=now,
                active=True,
                created_by=leg.created_by,
            )
            self.session.add(cashflow)
            cashflows.append(cashflow)

        self.session.flush()

        logger.info(
            "cashflows_generated",
            extra={
                "leg_id": str(leg.id),
                "leg_number": leg.leg_number,
                "interval_months": interval,
                "start_date": start_date,
                "maturity_date": maturity_date,
                "cashflow_count": len(cashflows),
                "payment_value": payment_value,
            },
        )
        return cashflows
