"""
TradeKernelConfig schema.

The typed form of one YAML configuration set.  The loader parses a set
into these frozen dataclasses; the bridges turn them into kernel inputs
(LifecyclePolicy, reference-data seeds).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class SeedUserDef:
    """A desk user created by reference-data seeding."""

    login_id: str
    first_name: str
    last_name: str
    role: str | None
    active: bool = True


@dataclass(frozen=True)
class LifecycleStatusesDef:
    """Status names the lifecycle moves trades into."""

    default_status: str = "NEW"
    amended_status: str = "AMENDED"
    terminated_status: str = "TERMINATED"
    cancelled_status: str = "CANCELLED"


@dataclass(frozen=True)
class SettlementInstructionsDef:
    pattern: str
    search_max_length: int
    search_strip_pattern: str


@dataclass(frozen=True)
class DashboardDef:
    """Summary statuses and the fixed placeholder risk figures."""

    summary_statuses: tuple[str, ...]
    var_factor: Decimal
    mtm_factor: Decimal
    mocked_realized_pnl: Decimal
    mocked_notional_change_percent: Decimal


@dataclass(frozen=True)
class TradeKernelConfig:
    """
    One loaded configuration set.

    ``checksum`` is the SHA-256 of the set's canonical JSON form; two sets
    with the same content have the same checksum.
    """

    config_id: str
    version: int
    checksum: str
    role_permissions: dict[str, tuple[str, ...]]
    settlement_editor_roles: tuple[str, ...]
    trade_id_base: int
    max_trade_date_age_days: int
    statuses: LifecycleStatusesDef
    schedule_aliases: dict[str, int]
    default_interval_months: int
    settlement_instructions: SettlementInstructionsDef
    dashboard: DashboardDef
    reference_seeds: dict[str, tuple[str, ...]] = field(default_factory=dict)
    users: tuple[SeedUserDef, ...] = ()
