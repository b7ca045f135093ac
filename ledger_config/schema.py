"""
LedgerConfig schema.

The typed, frozen form of a ledger configuration file. The loader parses
YAML into these types; callers obtain them only through
``ledger_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Where the balance store lives."""

    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    """Kernel log output."""

    level: str = "INFO"


@dataclass(frozen=True)
class GenesisConfig:
    """Assets created on a fresh store, in order."""

    assets: tuple[str, ...] = ()


@dataclass(frozen=True)
class AddressBookConfig:
    """Destination aliases for the transfer entry point."""

    entries: tuple[tuple[str, str], ...] = ()
    passthrough: bool = True

    def as_dict(self) -> dict[str, str]:
        return dict(self.entries)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """A complete, validated ledger configuration."""

    config_id: str
    version: int
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    genesis: GenesisConfig = field(default_factory=GenesisConfig)
    address_book: AddressBookConfig = field(default_factory=AddressBookConfig)
    checksum: str = ""
