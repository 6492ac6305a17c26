"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that flow through the trade
    lifecycle: TradeInput / TradeLegInput / CashflowInput (proposed data
    handed in by the caller), TradeInfo / TradeLegInfo / CashflowInfo
    (read-side snapshots of persisted versions), the search filter and
    page envelope, and the dashboard summaries.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of database access.  from_model() class methods exist as boundary
    converters but are only invoked from the service and selector layers.

Invariants enforced:
    - Monetary inputs are coerced to Decimal on construction (floats go
      through ``str`` so 3.5 stays 3.5).
    - Reference data is addressed through EntityRef: a name, an id, or
      neither.  It is resolved once, by ReferenceDataService.resolve().

Data flow:
    TradeInput -> (validate, resolve) -> Trade rows -> TradeInfo
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Generic, TypeVar
from uuid import UUID

from trade_kernel.db.types import to_decimal

if TYPE_CHECKING:
    from trade_kernel.models.trade import Cashflow as CashflowModel
    from trade_kernel.models.trade import Trade as TradeModel
    from trade_kernel.models.trade import TradeLeg as TradeLegModel

T = TypeVar("T")


@dataclass(frozen=True)
class EntityRef:
    """
    Unresolved reference to a reference-data row, by name or by id.

    When both are supplied the id wins.  An EntityRef with neither is
    "not set"; validation reports it as missing.
    """

    name: str | None = None
    id: UUID | None = None

    @classmethod
    def by_name(cls, name: str) -> EntityRef:
        return cls(name=name)

    @classmethod
    def by_id(cls, entity_id: UUID) -> EntityRef:
        return cls(id=entity_id)

    @classmethod
    def of(cls, value: EntityRef | UUID | str | None) -> EntityRef:
        """Coerce a name, an id, an EntityRef or None into an EntityRef."""
        if value is None:
            return cls()
        if isinstance(value, EntityRef):
            return value
        if isinstance(value, UUID):
            return cls(id=value)
        return cls(name=str(value))

    @property
    def is_set(self) -> bool:
        return self.id is not None or bool(self.name and self.name.strip())

    def __str__(self) -> str:
        if self.id is not None:
            return str(self.id)
        return self.name or ""


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CashflowInput:
    """A cashflow supplied with a leg (used for implicit-maturity checks)."""

    value_date: date | None
    payment_value: Decimal | None = None
    rate: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "payment_value", to_decimal(self.payment_value))
        object.__setattr__(self, "rate", to_decimal(self.rate))


@dataclass(frozen=True)
class TradeLegInput:
    """
    Proposed leg.

    String fields hold reference-data names: ``pay_receive_flag`` is
    "PAY" or "RECEIVE", ``leg_type`` is "Fixed" or "Floating", ``currency``
    is an ISO code, ``calculation_period_schedule`` is a schedule name
    such as "Monthly" or "3M".
    """

    notional: Decimal | None
    pay_receive_flag: str | None
    leg_type: str | None
    currency: str | None
    rate: Decimal | None = None
    index: EntityRef = field(default_factory=EntityRef)
    calculation_period_schedule: str | None = None
    holiday_calendar: str | None = None
    payment_business_day_convention: str | None = None
    fixing_business_day_convention: str | None = None
    cashflows: tuple[CashflowInput, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "notional", to_decimal(self.notional))
        object.__setattr__(self, "rate", to_decimal(self.rate))
        object.__setattr__(self, "index", EntityRef.of(self.index))
        object.__setattr__(self, "cashflows", tuple(self.cashflows))

    @property
    def implicit_maturity(self) -> date | None:
        """Latest supplied cashflow value date, or None without dated cashflows."""
        dates = [cf.value_date for cf in self.cashflows if cf.value_date is not None]
        return max(dates) if dates else None


@dataclass(frozen=True)
class TradeInput:
    """
    Proposed trade version, as submitted to create or amend.

    ``legs`` is None when the caller did not send legs at all; an empty
    tuple means "sent, but empty".  Both fail the two-leg rule.
    """

    trade_date: date | None
    trade_start_date: date | None
    trade_maturity_date: date | None
    book: EntityRef = field(default_factory=EntityRef)
    counterparty: EntityRef = field(default_factory=EntityRef)
    trader_user: EntityRef = field(default_factory=EntityRef)
    inputter_user: EntityRef = field(default_factory=EntityRef)
    trade_status: EntityRef = field(default_factory=EntityRef)
    trade_type: EntityRef = field(default_factory=EntityRef)
    trade_sub_type: EntityRef = field(default_factory=EntityRef)
    legs: tuple[TradeLegInput, ...] | None = None
    trade_id: int | None = None
    trade_execution_date: date | None = None
    validity_start_date: date | None = None
    uti_code: str | None = None
    settlement_instructions: str | None = None

    def __post_init__(self) -> None:
        for name in (
            "book",
            "counterparty",
            "trader_user",
            "inputter_user",
            "trade_status",
            "trade_type",
            "trade_sub_type",
        ):
            object.__setattr__(self, name, EntityRef.of(getattr(self, name)))
        if self.legs is not None:
            object.__setattr__(self, "legs", tuple(self.legs))

    def with_trade_id(self, trade_id: int) -> TradeInput:
        return replace(self, trade_id=trade_id)

    @property
    def has_settlement_instructions(self) -> bool:
        return bool(self.settlement_instructions and self.settlement_instructions.strip())


# ---------------------------------------------------------------------------
# Read-side snapshots
# ---------------------------------------------------------------------------


def _name(ref) -> str | None:
    return ref.name if ref is not None else None


@dataclass(frozen=True)
class CashflowInfo:
    id: UUID
    value_date: date
    payment_value: Decimal
    rate: Decimal | None
    pay_rec: str | None
    payment_business_day_convention: str | None
    active: bool

    @classmethod
    def from_model(cls, model: CashflowModel) -> CashflowInfo:
        return cls(
            id=model.id,
            value_date=model.value_date,
            payment_value=model.payment_value,
            rate=model.rate,
            pay_rec=_name(model.pay_rec),
            payment_business_day_convention=_name(
                model.payment_business_day_convention
            ),
            active=model.active,
        )


@dataclass(frozen=True)
class TradeLegInfo:
    id: UUID
    leg_number: int
    notional: Decimal
    rate: Decimal | None
    pay_receive_flag: str | None
    leg_type: str | None
    currency: str | None
    index: str | None
    calculation_period_schedule: str | None
    holiday_calendar: str | None
    payment_business_day_convention: str | None
    fixing_business_day_convention: str | None
    cashflows: tuple[CashflowInfo, ...]

    @classmethod
    def from_model(cls, model: TradeLegModel) -> TradeLegInfo:
        return cls(
            id=model.id,
            leg_number=model.leg_number,
            notional=model.notional,
            rate=model.rate,
            pay_receive_flag=_name(model.pay_receive_flag),
            leg_type=_name(model.leg_type),
            currency=_name(model.currency),
            index=_name(model.index),
            calculation_period_schedule=_name(model.calculation_period_schedule),
            holiday_calendar=_name(model.holiday_calendar),
            payment_business_day_convention=_name(
                model.payment_business_day_convention
            ),
            fixing_business_day_convention=_name(
                model.fixing_business_day_convention
            ),
            cashflows=tuple(CashflowInfo.from_model(cf) for cf in model.cashflows),
        )


@dataclass(frozen=True)
class TradeInfo:
    """Snapshot of one persisted trade version."""

    id: UUID
    trade_id: int
    version: int
    active: bool
    trade_date: date | None
    trade_start_date: date | None
    trade_maturity_date: date | None
    trade_execution_date: date | None
    validity_start_date: date | None
    uti_code: str | None
    trade_status: str | None
    book: str | None
    counterparty: str | None
    trade_type: str | None
    trade_sub_type: str | None
    trader_user: str | None
    inputter_user: str | None
    created_date: datetime
    last_touch_timestamp: datetime
    deactivated_date: datetime | None
    legs: tuple[TradeLegInfo, ...]
    settlement_instructions: str | None = None

    @classmethod
    def from_model(
        cls,
        model: TradeModel,
        settlement_instructions: str | None = None,
    ) -> TradeInfo:
        return cls(
            id=model.id,
            trade_id=model.trade_id,
            version=model.version,
            active=model.active,
            trade_date=model.trade_date,
            trade_start_date=model.trade_start_date,
            trade_maturity_date=model.trade_maturity_date,
            trade_execution_date=model.trade_execution_date,
            validity_start_date=model.validity_start_date,
            uti_code=model.uti_code,
            trade_status=model.status_name,
            book=_name(model.book),
            counterparty=_name(model.counterparty),
            trade_type=_name(model.trade_type),
            trade_sub_type=_name(model.trade_sub_type),
            trader_user=model.trader_user.login_id if model.trader_user else None,
            inputter_user=(
                model.inputter_user.login_id if model.inputter_user else None
            ),
            created_date=model.created_date,
            last_touch_timestamp=model.last_touch_timestamp,
            deactivated_date=model.deactivated_date,
            legs=tuple(TradeLegInfo.from_model(leg) for leg in model.legs),
            settlement_instructions=settlement_instructions,
        )

    @property
    def cashflow_count(self) -> int:
        return sum(len(leg.cashflows) for leg in self.legs)


# ---------------------------------------------------------------------------
# Search and paging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TradeSearchFilter:
    """
    Optional criteria for trade search.  Unset fields do not filter.

    ``trader_user_id`` is the trader's login id.  The trade-date range is
    inclusive on both ends.
    """

    counterparty_name: str | None = None
    book_name: str | None = None
    trader_user_id: str | None = None
    status: str | None = None
    trade_date_from: date | None = None
    trade_date_to: date | None = None
    active_only: bool = True

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.counterparty_name,
                self.book_name,
                self.trader_user_id,
                self.status,
                self.trade_date_from,
                self.trade_date_to,
            )
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results.  ``page`` is zero-based."""

    items: tuple[T, ...]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PortfolioSummary:
    """Counts and exposures over a trader's live trades.

    ``total_var`` and ``portfolio_mtm`` are fixed fractions of aggregate
    notional, not model outputs.
    """

    trader_user_id: str
    trade_count_by_status: dict[str, int]
    trade_count_by_type: dict[str, int]
    trade_count_by_counterparty: dict[str, int]
    total_notional_by_currency: dict[str, Decimal]
    total_var: Decimal
    portfolio_mtm: Decimal

    @property
    def total_trades(self) -> int:
        return sum(self.trade_count_by_status.values())


@dataclass(frozen=True)
class DailySummary:
    trader_user_id: str
    report_date: date
    todays_trade_count: int
    yesterdays_trade_count: int
    todays_total_notional: Decimal
    daily_realized_pnl: Decimal
    vs_yesterday_trade_count_change: int
    vs_yesterday_notional_change_percent: Decimal
    book_activity_summary: dict[str, int]
