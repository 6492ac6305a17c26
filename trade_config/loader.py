"""
Configuration Loader (``trade_config.loader``).

Responsibility
--------------
Loads a configuration set's ``root.yaml`` and parses it into a
``TradeKernelConfig``.  This is tooling behind ``get_active_config()``;
services never call it directly.

Invariants enforced
-------------------
* Required sections raise ``KeyError`` when missing; there are no silent
  defaults for the privilege table or the trade-id base.
* ``compute_checksum`` is deterministic over the parsed YAML.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Non-numeric factor  -> ``decimal.InvalidOperation`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from trade_config.schema import (
    DashboardDef,
    LifecycleStatusesDef,
    SeedUserDef,
    SettlementInstructionsDef,
    TradeKernelConfig,
)

ROOT_FILE = "root.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical (sorted-key) JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _decimal(value: Any) -> Decimal:
    # Through str so YAML floats keep their written digits.
    return Decimal(str(value))


def parse_role_permissions(data: dict[str, Any]) -> dict[str, tuple[str, ...]]:
    return {
        str(role): tuple(str(op) for op in (operations or ()))
        for role, operations in data.items()
    }


def parse_users(data: list[dict[str, Any]]) -> tuple[SeedUserDef, ...]:
    return tuple(
        SeedUserDef(
            login_id=item["login_id"],
            first_name=item["first_name"],
            last_name=item["last_name"],
            role=item.get("role"),
            active=bool(item.get("active", True)),
        )
        for item in data
    )


def parse_config(data: dict[str, Any]) -> TradeKernelConfig:
    """
    Parse the contents of a ``root.yaml``.

    Preconditions:
        - ``data`` carries ``config_id``, ``privileges.roles``,
          ``trade_ids.base``, ``settlement_instructions`` and ``dashboard``.
    Raises:
        KeyError: if a required key is missing.
    """
    privileges = data["privileges"]
    lifecycle = data.get("lifecycle", {})
    schedules = data.get("schedules", {})
    settlement = data["settlement_instructions"]
    dashboard = data["dashboard"]

    return TradeKernelConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        role_permissions=parse_role_permissions(privileges["roles"]),
        settlement_editor_roles=tuple(
            privileges.get("settlement_editor_roles", ("TRADER_SALES",))
        ),
        trade_id_base=int(data["trade_ids"]["base"]),
        max_trade_date_age_days=int(
            data.get("validation", {}).get("max_trade_date_age_days", 30)
        ),
        statuses=LifecycleStatusesDef(**lifecycle),
        schedule_aliases={
            str(name).lower(): int(months)
            for name, months in schedules.get("aliases", {}).items()
        },
        default_interval_months=int(schedules.get("default_interval_months", 3)),
        settlement_instructions=SettlementInstructionsDef(
            pattern=settlement["pattern"],
            search_max_length=int(settlement["search_max_length"]),
            search_strip_pattern=settlement["search_strip_pattern"],
        ),
        dashboard=DashboardDef(
            summary_statuses=tuple(dashboard["summary_statuses"]),
            var_factor=_decimal(dashboard["var_factor"]),
            mtm_factor=_decimal(dashboard["mtm_factor"]),
            mocked_realized_pnl=_decimal(dashboard["mocked_realized_pnl"]),
            mocked_notional_change_percent=_decimal(
                dashboard["mocked_notional_change_percent"]
            ),
        ),
        reference_seeds={
            str(key): tuple(str(name) for name in (names or ()))
            for key, names in data.get("reference_data", {}).items()
        },
        users=parse_users(data.get("users", [])),
    )


def load_config_set(set_dir: Path) -> TradeKernelConfig:
    """Load and parse ``<set_dir>/root.yaml``."""
    return parse_config(load_yaml_file(set_dir / ROOT_FILE))
