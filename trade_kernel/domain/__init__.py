"""Pure domain core: DTOs, validation results, privilege table, schedule math."""

from trade_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from trade_kernel.domain.dtos import (
    CashflowInfo,
    CashflowInput,
    DailySummary,
    EntityRef,
    Page,
    PortfolioSummary,
    TradeInfo,
    TradeInput,
    TradeLegInfo,
    TradeLegInput,
    TradeSearchFilter,
)
from trade_kernel.domain.operations import TradeOperation
from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.domain.privileges import RolePermissionTable
from trade_kernel.domain.schedule import (
    calculate_cashflow_value,
    calculate_payment_dates,
    parse_schedule,
)
from trade_kernel.domain.validation import ValidationResult

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CashflowInfo",
    "CashflowInput",
    "DailySummary",
    "EntityRef",
    "Page",
    "PortfolioSummary",
    "TradeInfo",
    "TradeInput",
    "TradeLegInfo",
    "TradeLegInput",
    "TradeSearchFilter",
    "TradeOperation",
    "LifecyclePolicy",
    "RolePermissionTable",
    "calculate_cashflow_value",
    "calculate_payment_dates",
    "parse_schedule",
    "ValidationResult",
]
