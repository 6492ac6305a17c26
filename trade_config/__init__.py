"""
trade_config -- single public entrypoint for desk configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables.  The kernel MUST NEVER import from
    ``trade_config``; ``trade_config.bridges`` translates a loaded set into
    a ``LifecyclePolicy`` and reference-data seeds.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - A set must pass ``validate_configuration()`` before it is returned.
    - Same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` -- the set fails validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``TRADE_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each booked trade back to the configuration that
    governed its validation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from trade_config.loader import ROOT_FILE, load_config_set
from trade_config.schema import TradeKernelConfig
from trade_config.validator import validate_configuration

_logger = logging.getLogger("trade_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DEFAULT_SET = "default"


def get_active_config(
    config_dir: Path | None = None,
    name: str = DEFAULT_SET,
) -> TradeKernelConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to trade_config/sets/.
        name: Name of the set (its subdirectory under ``config_dir``).

    Raises:
        FileNotFoundError: If the set has no root.yaml.
        ValueError: If configuration validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / name
    if not (set_dir / ROOT_FILE).is_file():
        raise FileNotFoundError(f"Configuration set not found: {set_dir / ROOT_FILE}")

    config = load_config_set(set_dir)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning(
            "config_validation_warning",
            extra={"config_id": config.config_id, "warning": warning},
        )

    _logger.info(
        "TRADE_CONFIG_TRACE",
        extra={
            "trace_type": "TRADE_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "role_count": len(config.role_permissions),
            "trade_id_base": config.trade_id_base,
        },
    )
    return config


__all__ = ["TradeKernelConfig", "get_active_config"]
