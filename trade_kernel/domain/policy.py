"""
LifecyclePolicy -- the kernel's view of desk configuration.

Responsibility:
    One frozen value carrying every tunable the lifecycle, validation,
    cashflow and dashboard services read: the role permission table, the
    trade-id base, the trade-date age window, schedule aliases, settlement
    instruction rules, and the summary constants.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The kernel never reads YAML; the
    trade_config package builds a LifecyclePolicy from a configuration set
    (trade_config.bridges).  ``LifecyclePolicy.standard()`` carries the
    stock desk values for callers without a config set.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from trade_kernel.domain.privileges import RolePermissionTable
from trade_kernel.domain.schedule import DEFAULT_INTERVAL_MONTHS, DEFAULT_SCHEDULE_ALIASES
from trade_kernel.domain.settlement import (
    SEARCH_MAX_LENGTH,
    SEARCH_STRIP_PATTERN,
    SETTLEMENT_INSTRUCTIONS_PATTERN,
)

STANDARD_ROLE_PERMISSIONS: Mapping[str, tuple[str, ...]] = {
    "TRADER_SALES": ("CREATE", "AMEND", "TERMINATE", "CANCEL", "VIEW"),
    "MO": ("AMEND", "VIEW"),
    "SUPPORT": ("VIEW",),
    "SUPERUSER": ("*",),
}

SETTLEMENT_EDITOR_ROLE = "TRADER_SALES"


@dataclass(frozen=True)
class LifecyclePolicy:
    """Immutable desk policy consumed by the kernel services."""

    permissions: RolePermissionTable = field(
        default_factory=lambda: RolePermissionTable.from_mapping(
            STANDARD_ROLE_PERMISSIONS
        )
    )
    settlement_editor_roles: tuple[str, ...] = (SETTLEMENT_EDITOR_ROLE,)
    trade_id_base: int = 10000
    max_trade_date_age_days: int = 30
    default_trade_status: str = "NEW"
    amended_status: str = "AMENDED"
    terminated_status: str = "TERMINATED"
    cancelled_status: str = "CANCELLED"
    schedule_aliases: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_SCHEDULE_ALIASES))
    )
    default_interval_months: int = DEFAULT_INTERVAL_MONTHS
    settlement_instructions_pattern: str = SETTLEMENT_INSTRUCTIONS_PATTERN
    search_max_length: int = SEARCH_MAX_LENGTH
    search_strip_pattern: str = SEARCH_STRIP_PATTERN
    summary_statuses: tuple[str, ...] = ("LIVE", "NEW", "AMENDED")
    var_factor: Decimal = Decimal("0.015")
    mtm_factor: Decimal = Decimal("0.003")
    mocked_realized_pnl: Decimal = Decimal("150000.00")
    mocked_notional_change_percent: Decimal = Decimal("4.5")

    @classmethod
    def standard(cls) -> LifecyclePolicy:
        return cls()
