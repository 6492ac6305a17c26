"""
Module: trade_kernel.selectors.dashboard_selector
Responsibility: Trader dashboard reads -- the trader's blotter (all their
    trades, or one book's), the portfolio summary and the daily summary.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only active trade versions are counted.  A trade amended three times
      is one trade, not four.
    - Notional aggregates use absolute leg notionals, summed per leg (a
      two-leg swap contributes its notional twice).
    - Risk figures are fixed fractions of aggregate notional, rounded
      half-up to 2 places.  They are placeholders, not risk measures.
    - "Today" comes from the injected Clock.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, selectinload

from trade_kernel.db.types import SUMMARY_DECIMAL_PLACES, round_decimal
from trade_kernel.domain.clock import Clock
from trade_kernel.domain.dtos import DailySummary, Page, PortfolioSummary, TradeInfo
from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.logging_config import get_logger
from trade_kernel.models.reference import ApplicationUser, TradeStatus
from trade_kernel.models.trade import Trade, TradeLeg
from trade_kernel.selectors.base import BaseSelector
from trade_kernel.selectors.trade_selector import DEFAULT_PAGE_SIZE, TradeSelector

logger = get_logger("selectors.dashboard")

UNKNOWN = "UNKNOWN"


def _for_trader(trader_user_id: str) -> Select:
    return (
        select(Trade)
        .join(Trade.trader_user)
        .where(
            ApplicationUser.login_id == trader_user_id,
            Trade.active.is_(True),
        )
    )


def _absolute_notionals(trades: Iterable[Trade]) -> Iterable[tuple[str, Decimal]]:
    for trade in trades:
        for leg in trade.legs:
            currency = leg.currency.name if leg.currency is not None else UNKNOWN
            yield currency, abs(Decimal(leg.notional))


class DashboardSelector(BaseSelector):
    """Blotter and summary views for one trader."""

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._policy = policy or LifecyclePolicy.standard()
        self._trades = TradeSelector(session)

    def _load(self, stmt: Select) -> Sequence[Trade]:
        return self.session.execute(
            stmt.options(selectinload(Trade.legs).selectinload(TradeLeg.currency))
        ).scalars().all()

    # ------------------------------------------------------------------
    # Blotter
    # ------------------------------------------------------------------

    def get_my_trades(
        self,
        trader_user_id: str,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[TradeInfo]:
        return self._trades.paginate(_for_trader(trader_user_id), page, size)

    def get_book_trades(
        self,
        trader_user_id: str,
        book_id: UUID,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[TradeInfo]:
        stmt = _for_trader(trader_user_id).where(Trade.book_id == book_id)
        return self._trades.paginate(stmt, page, size)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def get_portfolio_summary(self, trader_user_id: str) -> PortfolioSummary:
        statuses = [s.upper() for s in self._policy.summary_statuses]
        trades = self._load(
            _for_trader(trader_user_id)
            .join(Trade.trade_status)
            .where(TradeStatus.name.in_(statuses))
        )

        by_status = Counter(t.status_name or UNKNOWN for t in trades)
        by_type = Counter(t.trade_type.name if t.trade_type else UNKNOWN for t in trades)
        by_counterparty = Counter(
            t.counterparty.name if t.counterparty else UNKNOWN for t in trades
        )

        notional_by_currency: dict[str, Decimal] = {}
        for currency, notional in _absolute_notionals(trades):
            notional_by_currency[currency] = (
                notional_by_currency.get(currency, Decimal(0)) + notional
            )
        aggregate = sum(notional_by_currency.values(), Decimal(0))

        summary = PortfolioSummary(
            trader_user_id=trader_user_id,
            trade_count_by_status=dict(by_status),
            trade_count_by_type=dict(by_type),
            trade_count_by_counterparty=dict(by_counterparty),
            total_notional_by_currency=notional_by_currency,
            total_var=round_decimal(aggregate * self._policy.var_factor, SUMMARY_DECIMAL_PLACES),
            portfolio_mtm=round_decimal(
                aggregate * self._policy.mtm_factor, SUMMARY_DECIMAL_PLACES
            ),
        )
        logger.debug(
            "portfolio_summary_built",
            extra={
                "trader_user_id": trader_user_id,
                "trade_count": summary.total_trades,
                "aggregate_notional": aggregate,
            },
        )
        return summary

    def _trades_on(self, trader_user_id: str, trade_date: date) -> Sequence[Trade]:
        return self._load(
            _for_trader(trader_user_id).where(Trade.trade_date == trade_date)
        )

    def get_daily_summary(self, trader_user_id: str) -> DailySummary:
        today = self._clock.today()
        yesterday = today - timedelta(days=1)

        todays_trades = self._trades_on(trader_user_id, today)
        yesterdays_trades = self._trades_on(trader_user_id, yesterday)

        todays_notional = sum(
            (notional for _, notional in _absolute_notionals(todays_trades)),
            Decimal(0),
        )
        book_activity = Counter(
            f"Book-{t.book.name if t.book else UNKNOWN}" for t in todays_trades
        )

        return DailySummary(
            trader_user_id=trader_user_id,
            report_date=today,
            todays_trade_count=len(todays_trades),
            yesterdays_trade_count=len(yesterdays_trades),
            todays_total_notional=todays_notional,
            daily_realized_pnl=round_decimal(
                self._policy.mocked_realized_pnl, SUMMARY_DECIMAL_PLACES
            ),
            vs_yesterday_trade_count_change=len(todays_trades) - len(yesterdays_trades),
            vs_yesterday_notional_change_percent=round_decimal(
                self._policy.mocked_notional_change_percent, 1
            ),
            book_activity_summary=dict(book_activity),
        )
