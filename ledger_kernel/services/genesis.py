"""
Genesis -- initial asset set for a fresh ledger.

Creates each configured asset, in order, through AssetLedger.create_asset
so that every creation emits AssetCreated like any other.
"""

from __future__ import annotations

from collections.abc import Iterable

from ledger_kernel.exceptions import GenesisError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.asset_ledger import AssetLedger

logger = get_logger("services.genesis")


def load_genesis(ledger: AssetLedger, asset_ids: Iterable[str]) -> list[str]:
    """
    Create ``asset_ids`` on an empty ledger.

    Returns:
        The created asset ids, in creation order.

    Raises:
        GenesisError: If the store already holds assets, or the list
            contains a duplicate id.
    """
    ids = list(asset_ids)
    existing = ledger.store.asset_count()
    if existing:
        raise GenesisError(f"store already holds {existing} asset(s)")

    seen: set[str] = set()
    for asset_id in ids:
        if asset_id in seen:
            raise GenesisError(f"duplicate asset id in genesis: {asset_id}")
        seen.add(asset_id)

    for asset_id in ids:
        ledger.create_asset(asset_id)

    logger.info("genesis_loaded", extra={"asset_count": len(ids)})
    return ids
