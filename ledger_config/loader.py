"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``ledger_config.schema`` dataclasses.  Runtime callers go through
``ledger_config.get_active_config()``, never through this module.

Invariants enforced
-------------------
* Every parse/validation problem raises ``ValueError`` naming the field.
* ``compute_checksum`` is a deterministic SHA-256 over the raw document,
  so the same file always yields the same checksum.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid fields  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    AddressBookConfig,
    DatabaseConfig,
    GenesisConfig,
    LedgerConfig,
    LoggingConfig,
)

MAX_ASSET_ID_LENGTH = 64
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    url = data.get("url", DatabaseConfig.url)
    if not isinstance(url, str) or not url:
        raise ValueError("database.url must be a non-empty string")
    pool_size = data.get("pool_size", DatabaseConfig.pool_size)
    if not isinstance(pool_size, int) or pool_size < 1:
        raise ValueError(f"database.pool_size must be a positive integer, got {pool_size!r}")
    max_overflow = data.get("max_overflow", DatabaseConfig.max_overflow)
    if not isinstance(max_overflow, int) or max_overflow < 0:
        raise ValueError(
            f"database.max_overflow must be a non-negative integer, got {max_overflow!r}"
        )
    return DatabaseConfig(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=pool_size,
        max_overflow=max_overflow,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", LoggingConfig.level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {_LOG_LEVELS}, got {level!r}")
    return LoggingConfig(level=level)


def parse_genesis(data: dict[str, Any]) -> GenesisConfig:
    assets = data.get("assets") or []
    if not isinstance(assets, list):
        raise ValueError("genesis.assets must be a list")
    seen: set[str] = set()
    for asset_id in assets:
        if not isinstance(asset_id, str) or not asset_id:
            raise ValueError(f"genesis.assets: invalid asset id {asset_id!r}")
        if len(asset_id) > MAX_ASSET_ID_LENGTH:
            raise ValueError(
                f"genesis.assets: asset id longer than {MAX_ASSET_ID_LENGTH}: {asset_id!r}"
            )
        if asset_id in seen:
            raise ValueError(f"genesis.assets: duplicate asset id {asset_id!r}")
        seen.add(asset_id)
    return GenesisConfig(assets=tuple(assets))


def parse_address_book(data: dict[str, Any]) -> AddressBookConfig:
    entries = data.get("entries") or {}
    if not isinstance(entries, dict):
        raise ValueError("address_book.entries must be a mapping")
    for alias, account_id in entries.items():
        if not isinstance(alias, str) or not alias:
            raise ValueError(f"address_book.entries: invalid alias {alias!r}")
        if not isinstance(account_id, str) or not account_id:
            raise ValueError(
                f"address_book.entries[{alias!r}]: account id must be a non-empty string"
            )
    return AddressBookConfig(
        entries=tuple(sorted(entries.items())),
        passthrough=bool(data.get("passthrough", True)),
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} must be a mapping")
    return section


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a whole configuration document.

    Raises:
        ValueError: if a required key is missing or a value is invalid.
    """
    if "config_id" not in data:
        raise ValueError("config_id is required")
    version = data.get("version", 1)
    if not isinstance(version, int) or version < 1:
        raise ValueError(f"version must be a positive integer, got {version!r}")

    return LedgerConfig(
        config_id=str(data["config_id"]),
        version=version,
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        genesis=parse_genesis(_section(data, "genesis")),
        address_book=parse_address_book(_section(data, "address_book")),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> LedgerConfig:
    return parse_config(load_yaml_file(path))


def log_level(config: LedgerConfig) -> int:
    """The ``logging`` module constant for the configured level."""
    return logging.getLevelName(config.logging.level)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
