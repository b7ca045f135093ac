"""
Account lifecycle -- zero/nonzero balance transition notifications.

Responsibility:
    The interface through which the mutation engine tells an external
    account-reference subsystem that an account started or stopped
    holding an asset.

Architecture position:
    Kernel > Domain. Injected into AssetLedger by constructor; the kernel
    never owns account existence itself.

Invariants enforced:
    Hooks are invoked exactly once per zero->nonzero or nonzero->zero
    transition, after the operation's store writes have succeeded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter


class AccountLifecycle(ABC):
    """Receives account creation/removal notifications."""

    @abstractmethod
    def on_account_created(self, account_id: str) -> None:
        """Account went from zero to a positive balance in some asset."""
        ...

    @abstractmethod
    def on_account_removed(self, account_id: str) -> None:
        """Account went from a positive balance to zero in some asset."""
        ...


class NullAccountLifecycle(AccountLifecycle):
    """Ignores all notifications."""

    def on_account_created(self, account_id: str) -> None:
        pass

    def on_account_removed(self, account_id: str) -> None:
        pass


class ReferenceCounter(AccountLifecycle):
    """
    Counts, per account, how many assets it currently holds.

    An account is "alive" while its reference count is positive. The
    count never goes below zero.
    """

    def __init__(self) -> None:
        self._refs: Counter[str] = Counter()

    def on_account_created(self, account_id: str) -> None:
        self._refs[account_id] += 1

    def on_account_removed(self, account_id: str) -> None:
        if self._refs[account_id] > 0:
            self._refs[account_id] -= 1
        if self._refs[account_id] == 0:
            del self._refs[account_id]

    def references(self, account_id: str) -> int:
        return self._refs.get(account_id, 0)

    def is_alive(self, account_id: str) -> bool:
        return self.references(account_id) > 0
