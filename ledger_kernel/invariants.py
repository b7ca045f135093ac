"""
Kernel Invariants Contract.

These invariants are structural law. They are hardcoded in the mutation
engine and the imbalance layer. No configuration may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across AssetLedger, BalanceStore and the
imbalance scope in ledger_kernel.domain.imbalance.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    ISSUANCE_CONSERVATION = "issuance_conservation"
    """Total issuance equals the sum of account balances after every
    completed operation. Enforced by AssetLedger and verified by
    LedgerSelector.verify_asset."""

    ACCOUNT_COUNT = "account_count"
    """An asset's account_count equals the number of accounts holding a
    strictly positive balance. Enforced by AssetLedger on every
    zero/nonzero transition."""

    ATOMIC_MUTATION = "atomic_mutation"
    """A failed operation leaves storage unchanged. Enforced by the
    validate-then-mutate protocol and BalanceStore.atomic()."""

    NO_NEGATIVE_BALANCES = "no_negative_balances"
    """Balances and issuance are integers in [0, 2**256 - 1]. Enforced by
    ledger_kernel.domain.amount."""

    IMBALANCE_FINALIZATION = "imbalance_finalization"
    """Every Debt/Credit is consumed or finalized exactly once. Enforced by
    ImbalanceScope."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "ledger_config",
    "scripts",
)
