"""
Tests for TradeValidator business rules.

Covers:
- Mandatory and ordered dates, the trade-date age window
- Trader / book / counterparty existence and active flags
- Status, type and sub-type lookups by name and by id
- Leg checks only when legs are sent
"""

from datetime import date
from uuid import uuid4

import pytest

from trade_kernel.domain.dtos import EntityRef
from trade_kernel.domain.leg_rules import LEG_COUNT_ERROR
from trade_kernel.models.reference import Book
from trade_kernel.services.trade_validator import MANDATORY_DATES_ERROR, TradeValidator


@pytest.fixture
def validator(session, clock, policy, reference_data):
    return TradeValidator(session, clock, policy, reference_data)


class TestDates:

    def test_valid_trade_passes(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input())
        assert result.successful
        assert result.errors == []

    @pytest.mark.parametrize("field", ["trade_date", "trade_start_date", "trade_maturity_date"])
    def test_each_date_is_mandatory(self, validator, make_trade_input, field):
        result = validator.validate_trade_business_rules(make_trade_input(**{field: None}))
        assert MANDATORY_DATES_ERROR in result.errors

    def test_missing_dates_reported_once(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_date=None, trade_start_date=None, trade_maturity_date=None)
        )
        assert result.errors.count(MANDATORY_DATES_ERROR) == 1

    def test_maturity_before_start_and_trade_date(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_maturity_date=date(2025, 1, 10))
        )
        assert result.errors == [
            "Maturity Date (2025-01-10) cannot be before Start Date (2025-01-17).",
            "Maturity Date (2025-01-10) cannot be before Trade Date (2025-01-17).",
        ]

    def test_trade_date_thirty_one_days_old(self, validator, make_trade_input):
        """Clock is 2025-01-20; 2024-12-20 is 31 days back."""
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_date=date(2024, 12, 20))
        )
        assert result.errors == [
            "Trade Date (2024-12-20) is more than 30 days in the past."
        ]

    def test_future_trade_date_allowed(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_date=date(2025, 2, 1))
        )
        assert result.successful

    def test_window_follows_clock(self, validator, make_trade_input, clock):
        clock.advance_days(60)
        result = validator.validate_trade_business_rules(make_trade_input())
        assert any("more than 30 days" in e for e in result.errors)


class TestParties:

    def test_missing_trader(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(trader_user=None))
        assert result.errors == ["Trader user ID is mandatory for status validation."]

    def test_inactive_trader(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(trader_user="retired1"))
        assert result.errors == ["Trader user is inactive or does not exist (ID: retired1)."]

    def test_unknown_book(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(book="RATES-TKY"))
        assert result.errors == ["Trade Book is inactive or does not exist (ID: RATES-TKY)."]

    def test_inactive_book(self, validator, make_trade_input, session):
        session.add(Book(name="CLOSED-BOOK", active=False))
        session.flush()

        result = validator.validate_trade_business_rules(make_trade_input(book="CLOSED-BOOK"))

        assert result.errors == ["Trade Book is inactive or does not exist (ID: CLOSED-BOOK)."]

    def test_book_by_id(self, validator, make_trade_input, reference_data):
        book = reference_data.find_by_name(Book, "RATES-LDN")
        result = validator.validate_trade_business_rules(
            make_trade_input(book=EntityRef.by_id(book.id))
        )
        assert result.successful

    def test_missing_counterparty(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(counterparty=None))
        assert result.errors == ["Counterparty ID is mandatory."]

    def test_names_match_case_insensitively(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(
            make_trade_input(book="rates-ny", counterparty="BANK OF EXAMPLE")
        )
        assert result.successful


class TestReferenceData:

    def test_unknown_status_by_name(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(trade_status="PENDING"))
        assert result.errors == ["Trade Status is invalid or does not exist (Name: PENDING)."]

    def test_unknown_type_by_id(self, validator, make_trade_input):
        missing = uuid4()
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_type=EntityRef.by_id(missing))
        )
        assert result.errors == [f"Trade Type is invalid or does not exist (ID: {missing})."]

    def test_unknown_sub_type_by_name(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(trade_sub_type="CDS"))
        assert result.errors == ["Trade Sub Type is invalid or does not exist (Name: CDS)."]

    def test_unknown_sub_type_by_id(self, validator, make_trade_input):
        missing = uuid4()
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_sub_type=EntityRef.by_id(missing))
        )
        assert result.errors == [
            f"Trade Sub Type ID is invalid or does not exist (ID: {missing})."
        ]

    def test_unset_type_fields_are_optional(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(
            make_trade_input(trade_type=None, trade_sub_type=None)
        )
        assert result.successful


class TestLegs:

    def test_legs_not_sent_are_not_checked(self, validator, make_trade_input):
        assert validator.validate_trade_business_rules(make_trade_input(legs=None)).successful

    def test_empty_legs_fail(self, validator, make_trade_input):
        result = validator.validate_trade_business_rules(make_trade_input(legs=()))
        assert result.errors == [LEG_COUNT_ERROR]

    def test_leg_errors_follow_trade_errors(self, validator, make_trade_input, fixed_leg):
        result = validator.validate_trade_business_rules(
            make_trade_input(book=None, legs=(fixed_leg(), fixed_leg()))
        )
        assert result.errors[0] == "Book ID is mandatory."
        assert "Pay/Receive" in result.errors[1]

    def test_leg_consistency_directly(self, validator, fixed_leg, floating_leg):
        assert validator.validate_trade_leg_consistency([fixed_leg(), floating_leg()]).successful
        assert validator.validate_trade_leg_consistency(None).errors == [LEG_COUNT_ERROR]
