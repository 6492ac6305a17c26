"""
Config -> Kernel Bridges.

Functions that turn a TradeKernelConfig into kernel inputs.  They live in
trade_config (the producer) because the kernel must NEVER import
trade_config.

Usage:
    from trade_config.bridges import build_lifecycle_policy, seed_reference_data

    config = get_active_config()
    policy = build_lifecycle_policy(config)
    with session_scope() as session:
        seed_reference_data(session, config)
        service = TradeService(session, SystemClock(), policy)
"""

from __future__ import annotations

from types import MappingProxyType

from sqlalchemy.orm import Session

from trade_config.schema import TradeKernelConfig
from trade_kernel.domain.policy import LifecyclePolicy
from trade_kernel.domain.privileges import RolePermissionTable
from trade_kernel.logging_config import get_logger
from trade_kernel.services.reference_data_service import ReferenceDataService

logger = get_logger("config.bridges")


def build_role_permissions(config: TradeKernelConfig) -> RolePermissionTable:
    return RolePermissionTable.from_mapping(config.role_permissions)


def build_lifecycle_policy(config: TradeKernelConfig) -> LifecyclePolicy:
    """LifecyclePolicy carrying every tunable from ``config``."""
    statuses = config.statuses
    si = config.settlement_instructions
    dashboard = config.dashboard
    return LifecyclePolicy(
        permissions=build_role_permissions(config),
        settlement_editor_roles=tuple(r.upper() for r in config.settlement_editor_roles),
        trade_id_base=config.trade_id_base,
        max_trade_date_age_days=config.max_trade_date_age_days,
        default_trade_status=statuses.default_status,
        amended_status=statuses.amended_status,
        terminated_status=statuses.terminated_status,
        cancelled_status=statuses.cancelled_status,
        schedule_aliases=MappingProxyType(dict(config.schedule_aliases)),
        default_interval_months=config.default_interval_months,
        settlement_instructions_pattern=si.pattern,
        search_max_length=si.search_max_length,
        search_strip_pattern=si.search_strip_pattern,
        summary_statuses=tuple(dashboard.summary_statuses),
        var_factor=dashboard.var_factor,
        mtm_factor=dashboard.mtm_factor,
        mocked_realized_pnl=dashboard.mocked_realized_pnl,
        mocked_notional_change_percent=dashboard.mocked_notional_change_percent,
    )


def seed_reference_data(session: Session, config: TradeKernelConfig) -> dict[str, int]:
    """
    Insert the configured reference rows and users that are missing.

    Returns:
        Rows created per seed key, plus ``users``.
    """
    reference_data = ReferenceDataService(session)
    created = reference_data.seed_defaults(config.reference_seeds)

    users_created = 0
    for user in config.users:
        if reference_data.find_user(user.login_id) is None:
            reference_data.create_user(
                user.login_id,
                user.first_name,
                user.last_name,
                user.role,
                active=user.active,
            )
            users_created += 1
    created["users"] = users_created

    logger.info(
        "config_reference_data_seeded",
        extra={"config_id": config.config_id, "created_counts": created},
    )
    return created
