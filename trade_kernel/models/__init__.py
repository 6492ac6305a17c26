"""Domain models for the trade kernel."""

from trade_kernel.models.additional_info import (
    ENTITY_TYPE_TRADE,
    FIELD_NAME_SETTLEMENT_INSTRUCTIONS,
    FIELD_TYPE_STRING,
    AdditionalInfo,
)
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
    ReferenceBase,
    Schedule,
    TradeStatus,
    TradeSubType,
    TradeType,
    UserProfile,
)
from trade_kernel.models.trade import Cashflow, Trade, TradeLeg

__all__ = [
    "AdditionalInfo",
    "ENTITY_TYPE_TRADE",
    "FIELD_NAME_SETTLEMENT_INSTRUCTIONS",
    "FIELD_TYPE_STRING",
    "ApplicationUser",
    "Book",
    "BusinessDayConvention",
    "Counterparty",
    "Currency",
    "HolidayCalendar",
    "LegType",
    "PayRec",
    "RateIndex",
    "ReferenceBase",
    "Schedule",
    "TradeStatus",
    "TradeSubType",
    "TradeType",
    "UserProfile",
    "Cashflow",
    "Trade",
    "TradeLeg",
]
