"""
Configuration Validator (``trade_config.validator``).

Responsibility
--------------
Checks a parsed ``TradeKernelConfig`` before it is handed to the kernel.

Invariants enforced
-------------------
* Every operation in the privilege table is a known trade operation or
  the ``*`` wildcard.
* Settlement editor roles appear in the privilege table.
* Reference seeds only use known seed keys.
* Numeric limits are positive and regular expressions compile.

Failure modes
-------------
* Errors  -> the configuration MUST NOT be used.
* Warnings  -> usable, but should be reviewed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from trade_config.schema import TradeKernelConfig
from trade_kernel.domain.operations import TradeOperation
from trade_kernel.domain.privileges import WILDCARD
from trade_kernel.services.reference_data_service import REFERENCE_MODELS

REQUIRED_STATUS_SEEDS = "trade_statuses"


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: TradeKernelConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    _validate_privileges(config, result)
    _validate_limits(config, result)
    _validate_patterns(config, result)
    _validate_seeds(config, result)

    return result


def _validate_privileges(config: TradeKernelConfig, result: ConfigValidationResult) -> None:
    for role, operations in config.role_permissions.items():
        for op in operations:
            if op.strip() != WILDCARD and TradeOperation.parse(op) is None:
                result.add_error(f"Role '{role}' grants unknown operation '{op}'")

    roles = {role.upper() for role in config.role_permissions}
    for editor in config.settlement_editor_roles:
        if editor.upper() not in roles:
            result.add_error(
                f"Settlement editor role '{editor}' has no entry in privileges.roles"
            )


def _validate_limits(config: TradeKernelConfig, result: ConfigValidationResult) -> None:
    if config.trade_id_base <= 0:
        result.add_error(f"trade_ids.base must be positive, got {config.trade_id_base}")
    if config.max_trade_date_age_days < 0:
        result.add_error(
            "validation.max_trade_date_age_days must not be negative, "
            f"got {config.max_trade_date_age_days}"
        )
    if config.default_interval_months <= 0:
        result.add_error(
            "schedules.default_interval_months must be positive, "
            f"got {config.default_interval_months}"
        )
    for alias, months in config.schedule_aliases.items():
        if months <= 0:
            result.add_error(f"Schedule alias '{alias}' must map to a positive interval")
    if config.settlement_instructions.search_max_length <= 0:
        result.add_error("settlement_instructions.search_max_length must be positive")


def _validate_patterns(config: TradeKernelConfig, result: ConfigValidationResult) -> None:
    si = config.settlement_instructions
    for name, pattern in (
        ("pattern", si.pattern),
        ("search_strip_pattern", si.search_strip_pattern),
    ):
        try:
            re.compile(pattern)
        except re.error as exc:
            result.add_error(f"settlement_instructions.{name} does not compile: {exc}")


def _validate_seeds(config: TradeKernelConfig, result: ConfigValidationResult) -> None:
    for key in config.reference_seeds:
        if key not in REFERENCE_MODELS:
            result.add_error(f"Unknown reference_data key '{key}'")

    seeded_statuses = {s.upper() for s in config.reference_seeds.get(REQUIRED_STATUS_SEEDS, ())}
    statuses = config.statuses
    for status in (
        statuses.default_status,
        statuses.amended_status,
        statuses.terminated_status,
        statuses.cancelled_status,
    ):
        if status.upper() not in seeded_statuses:
            result.add_warning(
                f"Lifecycle status '{status}' is not in reference_data.trade_statuses"
            )

    profiles = {p.upper() for p in config.reference_seeds.get("user_profiles", ())}
    roles = {role.upper() for role in config.role_permissions}
    for user in config.users:
        if user.role and user.role.upper() not in roles | profiles:
            result.add_warning(
                f"User '{user.login_id}' has role '{user.role}' with no privileges"
            )
