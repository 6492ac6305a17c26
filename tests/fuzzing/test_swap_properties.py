"""
Property-based tests for schedules, cashflow values and leg rules.

Boundaries fuzzed here:
- Payment dates: any start, horizon and interval
- Cashflow values: notional and rate ranges, precision, leg type spelling
- Leg pairs: rule outcomes do not depend on which leg comes first
- Settlement instruction search terms: arbitrary text never escapes the allow-list
"""

import re
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from hypothesis import assume, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from trade_kernel.domain.dtos import EntityRef, TradeLegInput
from trade_kernel.domain.leg_rules import check_leg_consistency
from trade_kernel.domain.schedule import calculate_cashflow_value, calculate_payment_dates
from trade_kernel.domain.settlement import SEARCH_MAX_LENGTH, sanitize_search_text

TEN_PLACES = Decimal("0.0000000001")

start_dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2040, 12, 31))
intervals = st.sampled_from([1, 2, 3, 6, 12, 18, 24])
notionals = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
rates = st.decimals(
    min_value=Decimal("-5"),
    max_value=Decimal("25"),
    places=6,
    allow_nan=False,
    allow_infinity=False,
)


@composite
def leg_pairs(draw):
    notional = draw(notionals)
    currency = draw(st.sampled_from(["USD", "EUR", "GBP"]))
    fixed = TradeLegInput(
        notional=notional,
        pay_receive_flag=draw(st.sampled_from(["PAY", "RECEIVE"])),
        leg_type="Fixed",
        currency=currency,
        rate=draw(st.one_of(st.none(), rates)),
    )
    floating = TradeLegInput(
        notional=draw(st.one_of(st.just(notional), notionals)),
        pay_receive_flag=draw(st.sampled_from(["PAY", "RECEIVE", None])),
        leg_type=draw(st.sampled_from(["Floating", "FLOAT", "floating"])),
        currency=draw(st.one_of(st.just(currency), st.sampled_from(["USD", "JPY"]))),
        index=draw(st.sampled_from([EntityRef(), EntityRef.by_name("SOFR")])),
    )
    return fixed, floating


@composite
def consistent_leg_pairs(draw):
    """Pairs that satisfy every cross-leg rule by construction."""
    notional = draw(notionals)
    currency = draw(st.sampled_from(["USD", "EUR", "GBP"]))
    fixed_flag, floating_flag = draw(st.sampled_from([("PAY", "RECEIVE"), ("RECEIVE", "PAY")]))
    fixed = TradeLegInput(
        notional=notional,
        pay_receive_flag=fixed_flag,
        leg_type="Fixed",
        currency=currency,
        rate=draw(rates),
    )
    floating = TradeLegInput(
        # Same amount written at a different scale
        notional=draw(st.sampled_from([notional, notional.quantize(Decimal("0.0001"))])),
        pay_receive_flag=floating_flag.lower() if draw(st.booleans()) else floating_flag,
        leg_type=draw(st.sampled_from(["Floating", "FLOAT", "floating"])),
        currency=currency,
        index=draw(st.sampled_from([EntityRef.by_name("SOFR"), EntityRef.by_name("ESTR")])),
    )
    return fixed, floating


class TestPaymentDateProperties:

    @given(start=start_dates, days=st.integers(min_value=0, max_value=365 * 30), interval=intervals)
    @settings(max_examples=200)
    def test_dates_inside_window_and_increasing(self, start, days, interval):
        maturity = start + timedelta(days=days)

        dates = calculate_payment_dates(start, maturity, interval)

        assert all(start < d <= maturity for d in dates)
        assert dates == sorted(set(dates))

    @given(start=start_dates, periods=st.integers(min_value=1, max_value=120), interval=intervals)
    @settings(max_examples=200)
    def test_whole_periods_give_one_date_each(self, start, periods, interval):
        assume(start.day <= 28)
        month_index = start.month - 1 + periods * interval
        maturity = date(start.year + month_index // 12, month_index % 12 + 1, start.day)

        dates = calculate_payment_dates(start, maturity, interval)

        assert len(dates) == periods
        assert dates[-1] == maturity


class TestCashflowValueProperties:

    @given(notional=notionals, rate=rates, interval=intervals)
    @settings(max_examples=300)
    def test_fixed_value_matches_formula(self, notional, rate, interval):
        rate_fraction = (rate / 100).quantize(TEN_PLACES, rounding=ROUND_HALF_UP)
        expected = (notional * rate_fraction * interval / 12).quantize(
            TEN_PLACES, rounding=ROUND_HALF_UP
        )

        value = calculate_cashflow_value("Fixed", notional, rate, interval)

        assert value == expected
        assert value.as_tuple().exponent == -10

    @given(notional=notionals, rate=rates, interval=intervals)
    def test_sign_follows_rate(self, notional, rate, interval):
        value = calculate_cashflow_value("FIXED", notional, rate, interval)
        if rate > 0:
            assert value >= 0
        elif rate < 0:
            assert value <= 0

    @given(
        leg_type=st.sampled_from(["Floating", "float", "FLOATING", None, "Basis"]),
        notional=notionals,
        rate=st.one_of(st.none(), rates),
    )
    def test_non_fixed_legs_are_zero(self, leg_type, notional, rate):
        assert calculate_cashflow_value(leg_type, notional, rate, 3) == 0


class TestLegRuleProperties:

    @given(pair=leg_pairs())
    @settings(max_examples=300)
    def test_leg_order_does_not_change_pair_rules(self, pair):
        fixed, floating = pair

        forward = check_leg_consistency([fixed, floating])
        backward = check_leg_consistency([floating, fixed])

        # Type requirements are labelled by position, pair rules are not.
        strip = re.compile(r"^Leg \d: ")
        assert sorted(strip.sub("", e) for e in forward.errors) == sorted(
            strip.sub("", e) for e in backward.errors
        )

    @given(pair=consistent_leg_pairs(), reverse=st.booleans())
    def test_consistent_pairs_pass(self, pair, reverse):
        fixed, floating = pair
        legs = [floating, fixed] if reverse else [fixed, floating]

        result = check_leg_consistency(legs)

        assert result.successful
        assert result.errors == []


class TestSearchTermProperties:

    @given(text=st.text(max_size=400))
    @settings(max_examples=300)
    def test_sanitized_terms_use_only_allowed_characters(self, text):
        term = sanitize_search_text(text)

        if term is not None:
            assert len(term) <= SEARCH_MAX_LENGTH
            assert re.fullmatch(r"[a-zA-Z0-9\s.,-]+", term, flags=re.ASCII)
