"""
Ledger CLI -- operate a balance ledger from the shell.

Create assets, mint, burn, transfer, inspect balances and audit the
issuance invariants against the configured database.

Entry point: python -m scripts.cli
"""

from scripts.cli.main import main

__all__ = ["main"]
