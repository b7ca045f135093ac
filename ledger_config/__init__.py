"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerConfig``.

Architecture position:
    Configuration.  Sits above ``ledger_kernel``; the kernel never imports
    from ``ledger_config``.  Hosts (the CLI, tests) read the config and pass
    plain values into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` -- validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_config_file
from ledger_config.schema import (
    AddressBookConfig,
    DatabaseConfig,
    GenesisConfig,
    LedgerConfig,
    LoggingConfig,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """
    Load and validate the active configuration.

    Args:
        config_path: YAML file to load. Defaults to
            ledger_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    config = load_config_file(path)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "genesis_asset_count": len(config.genesis.assets),
        },
    )
    return config


__all__ = [
    "AddressBookConfig",
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "GenesisConfig",
    "LedgerConfig",
    "LoggingConfig",
    "get_active_config",
]
