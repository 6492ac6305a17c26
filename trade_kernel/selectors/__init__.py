"""Selectors for the trade kernel (read side)."""

from trade_kernel.selectors.dashboard_selector import DashboardSelector
from trade_kernel.selectors.trade_selector import DEFAULT_PAGE_SIZE, TradeSelector

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DashboardSelector",
    "TradeSelector",
]
