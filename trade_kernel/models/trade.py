"""
Module: trade_kernel.models.trade
Responsibility: ORM persistence for trade versions, their two legs, and the
    cashflows generated for each leg.
Architecture position: Kernel > Models.  May import from db/base.py and
    models/reference.py.  MUST NOT import from services/, selectors/ or domain/.

Invariants enforced:
    - Append-only versions: a Trade row is one version of a business trade.
      ``trade_id`` is stable across versions; ``id`` is unique per version;
      (trade_id, version) is unique.
    - Single active version: the partial unique index uq_trade_single_active
      allows at most one row with active = true per trade_id.  Amendments
      deactivate the current row before the next version is inserted.
    - Legs and cashflows belong to exactly one trade version and are never
      updated once written (db/immutability.py).

Failure modes:
    - IntegrityError on a second active row for the same trade_id.
    - IntegrityError on a duplicate (trade_id, version).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trade_kernel.db.base import TrackedBase
from trade_kernel.db.types import Money, TradeIdentifier
from trade_kernel.models.reference import (
    ApplicationUser,
    Book,
    BusinessDayConvention,
    Counterparty,
    Currency,
    HolidayCalendar,
    LegType,
    PayRec,
    RateIndex,
    Schedule,
    TradeStatus,
    TradeSubType,
    TradeType,
)


class Trade(TrackedBase):
    """
    One version of a swap trade.

    Contract:
        Only ``active``, ``deactivated_date``, ``trade_status_id`` and
        ``last_touch_timestamp`` change after insert.  Every other change is
        a new version with ``version + 1``.
    """

    __tablename__ = "trades"

    __table_args__ = (
        UniqueConstraint("trade_id", "version", name="uq_trade_version"),
        Index(
            "uq_trade_single_active",
            "trade_id",
            unique=True,
            postgresql_where=text("active = true"),
            sqlite_where=text("active = 1"),
        ),
        Index("idx_trade_trader", "trader_user_id"),
        Index("idx_trade_book", "book_id"),
        Index("idx_trade_trade_date", "trade_date"),
    )

    # Business key, stable across versions
    trade_id: Mapped[TradeIdentifier] = mapped_column(nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    trade_date: Mapped[date | None] = mapped_column(nullable=True)
    trade_start_date: Mapped[date | None] = mapped_column(nullable=True)
    trade_maturity_date: Mapped[date | None] = mapped_column(nullable=True)
    trade_execution_date: Mapped[date | None] = mapped_column(nullable=True)
    validity_start_date: Mapped[date | None] = mapped_column(nullable=True)

    uti_code: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_date: Mapped[datetime] = mapped_column(nullable=False)
    last_touch_timestamp: Mapped[datetime] = mapped_column(nullable=False)
    deactivated_date: Mapped[datetime | None] = mapped_column(nullable=True)

    book_id: Mapped[UUID | None] = mapped_column(ForeignKey("books.id"))
    counterparty_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("counterparties.id")
    )
    trade_status_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("trade_statuses.id")
    )
    trade_type_id: Mapped[UUID | None] = mapped_column(ForeignKey("trade_types.id"))
    trade_sub_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("trade_sub_types.id")
    )
    trader_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("application_users.id")
    )
    inputter_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("application_users.id")
    )

    book: Mapped[Book | None] = relationship()
    counterparty: Mapped[Counterparty | None] = relationship()
    trade_status: Mapped[TradeStatus | None] = relationship()
    trade_type: Mapped[TradeType | None] = relationship()
    trade_sub_type: Mapped[TradeSubType | None] = relationship()
    trader_user: Mapped[ApplicationUser | None] = relationship(
        foreign_keys=[trader_user_id]
    )
    inputter_user: Mapped[ApplicationUser | None] = relationship(
        foreign_keys=[inputter_user_id]
    )

    legs: Mapped[list[TradeLeg]] = relationship(
        back_populates="trade",
        order_by="TradeLeg.leg_number",
        # Children are never detached; a parent delete reaches before_delete.
        passive_deletes="all",
    )

    @property
    def status_name(self) -> str | None:
        return self.trade_status.name if self.trade_status else None

    def __repr__(self) -> str:
        return f"<Trade {self.trade_id} v{self.version} active={self.active}>"


class TradeLeg(TrackedBase):
    """One side of a swap: Fixed or Floating."""

    __tablename__ = "trade_legs"

    __table_args__ = (
        UniqueConstraint("trade_version_id", "leg_number", name="uq_leg_number"),
        Index("idx_leg_trade", "trade_version_id"),
    )

    trade_version_id: Mapped[UUID] = mapped_column(
        ForeignKey("trades.id"),
        nullable=False,
    )

    # 1 or 2, in the order the legs were submitted
    leg_number: Mapped[int] = mapped_column(Integer, nullable=False)

    notional: Mapped[Money] = mapped_column(nullable=False)

    # Percent for Fixed legs; informational (or null) for Floating legs
    rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_date: Mapped[datetime] = mapped_column(nullable=False)

    currency_id: Mapped[UUID | None] = mapped_column(ForeignKey("currencies.id"))
    leg_type_id: Mapped[UUID | None] = mapped_column(ForeignKey("leg_types.id"))
    index_id: Mapped[UUID | None] = mapped_column(ForeignKey("rate_indices.id"))
    holiday_calendar_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("holiday_calendars.id")
    )
    schedule_id: Mapped[UUID | None] = mapped_column(ForeignKey("schedules.id"))
    payment_bdc_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("business_day_conventions.id")
    )
    fixing_bdc_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("business_day_conventions.id")
    )
    pay_rec_id: Mapped[UUID | None] = mapped_column(ForeignKey("pay_recs.id"))

    trade: Mapped[Trade] = relationship(back_populates="legs")
    currency: Mapped[Currency | None] = relationship()
    leg_type: Mapped[LegType | None] = relationship()
    index: Mapped[RateIndex | None] = relationship()
    holiday_calendar: Mapped[HolidayCalendar | None] = relationship()
    calculation_period_schedule: Mapped[Schedule | None] = relationship()
    payment_business_day_convention: Mapped[BusinessDayConvention | None] = (
        relationship(foreign_keys=[payment_bdc_id])
    )
    fixing_business_day_convention: Mapped[BusinessDayConvention | None] = (
        relationship(foreign_keys=[fixing_bdc_id])
    )
    pay_receive_flag: Mapped[PayRec | None] = relationship()

    cashflows: Mapped[list[Cashflow]] = relationship(
        back_populates="leg",
        order_by="Cashflow.value_date",
        passive_deletes="all",
    )

    def __repr__(self) -> str:
        return f"<TradeLeg {self.leg_number} of {self.trade_version_id}>"


class Cashflow(TrackedBase):
    """A single scheduled payment generated from a leg.  Never updated."""

    __tablename__ = "cashflows"

    __table_args__ = (
        Index("idx_cashflow_leg", "leg_id"),
        Index("idx_cashflow_value_date", "value_date"),
    )

    leg_id: Mapped[UUID] = mapped_column(
        ForeignKey("trade_legs.id"),
        nullable=False,
    )

    value_date: Mapped[date] = mapped_column(nullable=False)

    payment_value: Mapped[Money] = mapped_column(nullable=False)

    rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    pay_rec_id: Mapped[UUID | None] = mapped_column(ForeignKey("pay_recs.id"))
    payment_bdc_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("business_day_conventions.id")
    )

    created_date: Mapped[datetime] = mapped_column(nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    leg: Mapped[TradeLeg] = relationship(back_populates="cashflows")
    pay_rec: Mapped[PayRec | None] = relationship()
    payment_business_day_convention: Mapped[BusinessDayConvention | None] = (
        relationship()
    )

    def __repr__(self) -> str:
        return f"<Cashflow {self.value_date} {self.payment_value}>"
