"""
Amount -- unsigned 256-bit arithmetic for balances and issuance.

Responsibility:
    Defines the numeric domain of the ledger: non-negative integers no
    larger than ``2**256 - 1``, plus the u32 domain used for account
    counts. Provides checked (None on overflow/underflow) and saturating
    (clamped) arithmetic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    NO_NEGATIVE_BALANCES -- every amount that reaches the store passes
    through ``validate_amount``.

Failure modes:
    - InvalidAmountError for bool, non-int, negative or oversized input.
"""

from __future__ import annotations

from ledger_kernel.exceptions import InvalidAmountError

Amount = int

MAX_AMOUNT: Amount = 2**256 - 1
MAX_ACCOUNT_COUNT: int = 2**32 - 1
ZERO: Amount = 0


def validate_amount(amount: object) -> Amount:
    """
    Check that ``amount`` is a valid 256-bit unsigned integer.

    Raises:
        InvalidAmountError: If amount is not an int in [0, MAX_AMOUNT].
    """
    # bool is an int subclass; True is not an amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "must be an integer")
    if amount < 0:
        raise InvalidAmountError(amount, "must not be negative")
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(amount, "exceeds 2**256 - 1")
    return amount


def checked_add(a: Amount, b: Amount, limit: int = MAX_AMOUNT) -> Amount | None:
    """Return ``a + b`` or None if the sum exceeds ``limit``."""
    total = a + b
    return None if total > limit else total


def checked_sub(a: Amount, b: Amount) -> Amount | None:
    """Return ``a - b`` or None if the result would be negative."""
    return None if b > a else a - b


def saturating_add(a: Amount, b: Amount, limit: int = MAX_AMOUNT) -> Amount:
    """Return ``a + b`` clamped to ``limit``."""
    return min(a + b, limit)


def saturating_sub(a: Amount, b: Amount) -> Amount:
    """Return ``a - b`` clamped to zero."""
    return max(a - b, 0)
