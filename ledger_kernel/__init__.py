"""
Ledger Kernel - multi-asset balance ledger

A per-asset issuance and balance ledger with:
- Validate-then-mutate balance changes
- Atomic store writes per operation
- Account lifecycle notifications on zero/nonzero transitions
- Debt/Credit imbalance accounting with guaranteed finalization
"""

__version__ = "0.1.0"
