"""
Integration tests for committed lifecycle operations.

Verifies:
- session_scope() commits a booked trade for later sessions
- A rejected operation inside session_scope() rolls back as a whole
- Records logged inside one scope share a correlation_id
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from trade_config import get_active_config
from trade_config.bridges import build_lifecycle_policy, seed_reference_data
from trade_kernel.db.engine import get_session, session_scope
from trade_kernel.domain.clock import DeterministicClock
from trade_kernel.exceptions import ReferenceDataNotFoundError
from trade_kernel.models.trade import Trade
from trade_kernel.services.trade_service import TradeService

NOW = datetime(2025, 1, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def desk(db_engine):
    """Committed reference data and policy from the default configuration set."""
    config = get_active_config()
    with session_scope() as session:
        seed_reference_data(session, config)
    return build_lifecycle_policy(config)


def _trade_count() -> int:
    session = get_session()
    try:
        return session.execute(select(func.count()).select_from(Trade)).scalar_one()
    finally:
        session.close()


class TestSessionScope:

    def test_committed_trade_visible_to_new_session(self, desk, make_trade_input):
        with session_scope() as session:
            created = TradeService(session, DeterministicClock(NOW), desk).create_trade(
                make_trade_input(), "trader1"
            )

        with session_scope() as session:
            info = TradeService(session, DeterministicClock(NOW), desk).get_trade_by_id(
                created.trade_id
            )

        assert info.version == 1
        assert info.cashflow_count == 24

    def test_amend_commits_both_versions(self, desk, make_trade_input):
        with session_scope() as session:
            service = TradeService(session, DeterministicClock(NOW), desk)
            trade_id = service.create_trade(make_trade_input(), "trader1").trade_id

        with session_scope() as session:
            service = TradeService(session, DeterministicClock(NOW), desk)
            service.amend_trade(trade_id, make_trade_input(), "trader1", expected_version=1)

        assert _trade_count() == 2

    def test_failure_rolls_back_everything(self, desk, make_trade_input, fixed_leg, floating_leg):
        # The first trade is flushed before the second one fails.
        legs = (fixed_leg(currency="XXX"), floating_leg(currency="XXX"))

        with pytest.raises(ReferenceDataNotFoundError):
            with session_scope() as session:
                service = TradeService(session, DeterministicClock(NOW), desk)
                service.create_trade(make_trade_input(), "trader1")
                service.create_trade(make_trade_input(legs=legs), "trader1")

        assert _trade_count() == 0

    def test_sequence_rolls_back_with_the_trade(self, desk, make_trade_input):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                TradeService(session, DeterministicClock(NOW), desk).create_trade(
                    make_trade_input(), "trader1"
                )
                raise RuntimeError("caller aborted")

        with session_scope() as session:
            info = TradeService(session, DeterministicClock(NOW), desk).create_trade(
                make_trade_input(), "trader1"
            )
        assert info.trade_id == 10000

    def test_scope_logs_share_a_correlation_id(self, desk, make_trade_input, captured_logs):
        for _ in range(2):
            with session_scope() as session:
                TradeService(session, DeterministicClock(NOW), desk).create_trade(
                    make_trade_input(), "trader1"
                )

        logs = captured_logs()
        created = [r for r in logs if r["message"] == "trade_created"]
        committed = [r for r in logs if r["message"] == "transaction_committed"]

        assert len(created) == 2
        assert {r["correlation_id"] for r in created} <= {r["correlation_id"] for r in committed}
        assert created[0]["correlation_id"] != created[1]["correlation_id"]
