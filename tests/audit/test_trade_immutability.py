"""
Append-only persistence tests.

Verifies:
- A trade version only changes its lifecycle columns, and only while active
- Superseded versions cannot be edited or reactivated
- Legs and cashflows are write-once
- Settlement instruction rows keep their value
- Nothing is physically deleted
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from trade_kernel.exceptions import ImmutabilityViolationError
from trade_kernel.models.additional_info import AdditionalInfo
from trade_kernel.models.trade import Cashflow, Trade, TradeLeg


def _trade_row(session, info) -> Trade:
    return session.get(Trade, info.id)


class TestTradeVersionImmutability:

    def test_economic_fields_are_fixed(self, session, booked_trade):
        trade = _trade_row(session, booked_trade)
        trade.trade_maturity_date = date(2027, 1, 17)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "Trade"
        assert "trade_maturity_date" in exc_info.value.reason

    def test_lifecycle_fields_may_change_on_active_version(self, session, clock, booked_trade):
        trade = _trade_row(session, booked_trade)
        trade.last_touch_timestamp = clock.now() + timedelta(minutes=5)
        session.flush()

    def test_superseded_version_is_frozen(
        self, session, trade_service, make_trade_input, booked_trade, clock
    ):
        trade_service.amend_trade(booked_trade.trade_id, make_trade_input(), "trader1")
        old = _trade_row(session, booked_trade)
        assert not old.active

        old.last_touch_timestamp = clock.now() + timedelta(minutes=5)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "inactive version" in exc_info.value.reason

    def test_superseded_version_cannot_be_reactivated(
        self, session, trade_service, make_trade_input, booked_trade
    ):
        trade_service.amend_trade(booked_trade.trade_id, make_trade_input(), "trader1")
        old = _trade_row(session, booked_trade)

        old.active = True

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_trade_delete_blocked(self, session, booked_trade):
        session.delete(_trade_row(session, booked_trade))

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "never physically deleted" in exc_info.value.reason


class TestWriteOnceRows:

    def test_leg_notional_fixed(self, session, booked_trade):
        leg = session.get(TradeLeg, booked_trade.legs[0].id)
        leg.notional = Decimal("2000000")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "TradeLeg"

    def test_cashflow_value_fixed(self, session, booked_trade):
        cashflow = session.get(Cashflow, booked_trade.legs[0].cashflows[0].id)
        cashflow.payment_value = Decimal("1")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Cashflow"

    def test_leg_delete_blocked(self, session, booked_trade):
        session.delete(session.get(TradeLeg, booked_trade.legs[0].id))

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "TradeLeg"
        assert "never physically deleted" in exc_info.value.reason

    def test_cashflow_delete_blocked(self, session, booked_trade):
        session.delete(session.get(Cashflow, booked_trade.legs[1].cashflows[0].id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestAdditionalInfoImmutability:

    def test_value_fixed(self, session, booked_trade):
        row = session.execute(
            select(AdditionalInfo).where(AdditionalInfo.entity_id == booked_trade.id)
        ).scalar_one()
        row.field_value = "Pay via somebody else entirely"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "AdditionalInfo"
        assert "field_value" in exc_info.value.reason
