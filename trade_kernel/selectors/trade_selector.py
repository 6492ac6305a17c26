"""
Module: trade_kernel.selectors.trade_selector
Responsibility: Read-only trade queries -- active version by business id,
    version history, paged listing, filtered search and settlement
    instruction text search.  Every result is a TradeInfo carrying the
    version's active settlement instructions.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Default ordering is trade_id descending, then version descending.
    - Settlement instruction search only matches active instruction rows
      attached to active trade versions.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.orm import selectinload

from trade_kernel.domain.dtos import Page, TradeInfo, TradeSearchFilter
from trade_kernel.models.additional_info import (
    ENTITY_TYPE_TRADE,
    FIELD_NAME_SETTLEMENT_INSTRUCTIONS,
    AdditionalInfo,
)
from trade_kernel.models.reference import ApplicationUser, Book, Counterparty, TradeStatus
from trade_kernel.models.trade import Trade, TradeLeg
from trade_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 20


def _with_details(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Trade.legs).selectinload(TradeLeg.cashflows),
    )


def _ordered(stmt: Select) -> Select:
    return stmt.order_by(Trade.trade_id.desc(), Trade.version.desc())


class TradeSelector(BaseSelector):
    """Trade read model."""

    def _settlement_instructions(self, version_ids: Sequence[UUID]) -> dict[UUID, str | None]:
        if not version_ids:
            return {}
        rows = self.session.execute(
            select(AdditionalInfo.entity_id, AdditionalInfo.field_value).where(
                AdditionalInfo.entity_type == ENTITY_TYPE_TRADE,
                AdditionalInfo.field_name == FIELD_NAME_SETTLEMENT_INSTRUCTIONS,
                AdditionalInfo.active.is_(True),
                AdditionalInfo.entity_id.in_(list(version_ids)),
            )
        ).all()
        return {entity_id: value for entity_id, value in rows}

    def to_infos(self, trades: Sequence[Trade]) -> list[TradeInfo]:
        instructions = self._settlement_instructions([t.id for t in trades])
        return [TradeInfo.from_model(t, instructions.get(t.id)) for t in trades]

    def paginate(self, stmt: Select, page: int, size: int) -> Page[TradeInfo]:
        if page < 0:
            raise ValueError(f"page must be >= 0, got {page}")
        if size <= 0:
            raise ValueError(f"size must be > 0, got {size}")

        total = self.session.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        trades = self.session.execute(
            _with_details(_ordered(stmt)).offset(page * size).limit(size)
        ).scalars().all()
        return Page(
            items=tuple(self.to_infos(trades)),
            page=page,
            size=size,
            total=total,
        )

    # ------------------------------------------------------------------
    # Single trade
    # ------------------------------------------------------------------

    def get_active(self, trade_id: int) -> TradeInfo | None:
        trade = self.session.execute(
            _with_details(
                select(Trade).where(Trade.trade_id == trade_id, Trade.active.is_(True))
            )
        ).scalar_one_or_none()
        if trade is None:
            return None
        return self.to_infos([trade])[0]

    def get_versions(self, trade_id: int) -> list[TradeInfo]:
        """Every version of a trade, oldest first."""
        trades = self.session.execute(
            _with_details(
                select(Trade).where(Trade.trade_id == trade_id).order_by(Trade.version)
            )
        ).scalars().all()
        return self.to_infos(trades)

    def count_active_versions(self, trade_id: int) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(Trade)
            .where(Trade.trade_id == trade_id, Trade.active.is_(True))
        ).scalar_one()

    # ------------------------------------------------------------------
    # Listing and search
    # ------------------------------------------------------------------

    def find_all(
        self,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        active_only: bool = True,
    ) -> Page[TradeInfo]:
        stmt = select(Trade)
        if active_only:
            stmt = stmt.where(Trade.active.is_(True))
        return self.paginate(stmt, page, size)

    def search(
        self,
        criteria: TradeSearchFilter,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[TradeInfo]:
        """Trades matching every set field of ``criteria``."""
        if criteria.is_empty:
            return self.find_all(page, size, active_only=criteria.active_only)

        stmt = select(Trade)
        if criteria.active_only:
            stmt = stmt.where(Trade.active.is_(True))
        if criteria.counterparty_name:
            stmt = stmt.join(Trade.counterparty).where(
                func.lower(Counterparty.name) == criteria.counterparty_name.strip().lower()
            )
        if criteria.book_name:
            stmt = stmt.join(Trade.book).where(
                func.lower(Book.name) == criteria.book_name.strip().lower()
            )
        if criteria.trader_user_id:
            stmt = stmt.join(Trade.trader_user).where(
                ApplicationUser.login_id == criteria.trader_user_id
            )
        if criteria.status:
            stmt = stmt.join(Trade.trade_status).where(
                func.upper(TradeStatus.name) == criteria.status.strip().upper()
            )
        if criteria.trade_date_from is not None:
            stmt = stmt.where(Trade.trade_date >= criteria.trade_date_from)
        if criteria.trade_date_to is not None:
            stmt = stmt.where(Trade.trade_date <= criteria.trade_date_to)

        return self.paginate(stmt, page, size)

    def search_by_settlement_instructions(self, term: str) -> list[TradeInfo]:
        """
        Active trades whose active instructions contain ``term``
        (case-insensitive).  ``term`` must already be sanitised.
        """
        stmt = (
            select(Trade)
            .join(AdditionalInfo, AdditionalInfo.entity_id == Trade.id)
            .where(
                Trade.active.is_(True),
                AdditionalInfo.entity_type == ENTITY_TYPE_TRADE,
                AdditionalInfo.field_name == FIELD_NAME_SETTLEMENT_INSTRUCTIONS,
                AdditionalInfo.active.is_(True),
                func.upper(AdditionalInfo.field_value).like(f"%{term.upper()}%"),
            )
        )
        trades = self.session.execute(_with_details(_ordered(stmt))).scalars().all()
        return self.to_infos(trades)
