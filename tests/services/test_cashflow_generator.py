"""Tests for CashflowGenerator against persisted legs."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.exceptions import InvalidScheduleError
from trade_kernel.models.reference import Schedule
from trade_kernel.models.trade import Cashflow, TradeLeg
from trade_kernel.services.cashflow_generator import CashflowGenerator

START = date(2025, 1, 17)
MATURITY = date(2026, 1, 17)


@pytest.fixture
def generator(session, clock, policy):
    return CashflowGenerator(session, clock, policy)


def _leg(session, trade_info, leg_number) -> TradeLeg:
    leg_id = trade_info.legs[leg_number - 1].id
    return session.get(TradeLeg, leg_id)


def _cashflow_count(session, leg) -> int:
    return session.execute(
        select(func.count()).select_from(Cashflow).where(Cashflow.leg_id == leg.id)
    ).scalar_one()


class TestGenerateCashflows:

    def test_monthly_fixed_leg(self, generator, session, booked_trade):
        leg = _leg(session, booked_trade, 1)

        cashflows = generator.generate_cashflows(leg, START, MATURITY)

        assert len(cashflows) == 12
        assert cashflows[0].value_date == date(2025, 2, 17)
        assert cashflows[-1].value_date == MATURITY
        assert {cf.payment_value for cf in cashflows} == {Decimal("4166.6666666667")}

    def test_copies_leg_terms(self, generator, session, booked_trade):
        leg = _leg(session, booked_trade, 1)

        cashflow = generator.generate_cashflows(leg, START, MATURITY)[0]

        assert cashflow.rate == leg.rate
        assert cashflow.pay_rec is leg.pay_receive_flag
        assert cashflow.payment_business_day_convention is leg.payment_business_day_convention
        assert cashflow.active
        assert cashflow.created_by == "trader1"

    def test_floating_leg_values_are_zero(self, generator, session, booked_trade):
        leg = _leg(session, booked_trade, 2)
        cashflows = generator.generate_cashflows(leg, START, MATURITY)
        assert all(cf.payment_value == Decimal("0") for cf in cashflows)

    def test_generating_twice_duplicates(self, generator, session, booked_trade):
        """Not idempotent: a second run writes a second set."""
        leg = _leg(session, booked_trade, 1)
        assert _cashflow_count(session, leg) == 12

        generator.generate_cashflows(leg, START, MATURITY)

        assert _cashflow_count(session, leg) == 24

    def test_maturity_inside_first_period(self, generator, session, booked_trade):
        leg = _leg(session, booked_trade, 1)
        assert generator.generate_cashflows(leg, START, date(2025, 2, 1)) == []

    def test_logs_generation(self, generator, session, booked_trade, captured_logs):
        leg = _leg(session, booked_trade, 1)
        generator.generate_cashflows(leg, START, MATURITY)

        records = [r for r in captured_logs() if r["message"] == "cashflows_generated"]
        assert records[-1]["cashflow_count"] == 12
        assert records[-1]["interval_months"] == 1
        assert records[-1]["payment_value"] == "4166.6666666667"


class TestInterval:

    def test_interval_from_leg_schedule(self, generator, session, booked_trade):
        assert generator.interval_for(_leg(session, booked_trade, 1)) == 1

    def test_leg_without_schedule_uses_default(
        self, trade_service, make_trade_input, fixed_leg, floating_leg, generator, session
    ):
        info = trade_service.create_trade(
            make_trade_input(
                legs=(
                    fixed_leg(calculation_period_schedule=None),
                    floating_leg(calculation_period_schedule=None),
                )
            ),
            "trader1",
        )

        leg = _leg(session, info, 1)

        assert generator.interval_for(leg) == 3
        assert len(info.legs[0].cashflows) == 4

    def test_schedule_outside_alias_table(
        self, session, clock, reference_data, trade_service, make_trade_input,
        fixed_leg, floating_leg
    ):
        """A seeded schedule name the parser does not know is malformed."""
        session.add(Schedule(name="Weekly", active=True))
        session.flush()

        with pytest.raises(InvalidScheduleError):
            trade_service.create_trade(
                make_trade_input(
                    legs=(
                        fixed_leg(calculation_period_schedule="Weekly"),
                        floating_leg(calculation_period_schedule="Weekly"),
                    )
                ),
                "trader1",
            )

    def test_policy_aliases(self, session, clock, booked_trade):
        policy = LifecyclePolicy(schedule_aliases={"monthly": 2})
        generator = CashflowGenerator(session, clock, policy)
        assert generator.interval_for(_leg(session, booked_trade, 1)) == 2
