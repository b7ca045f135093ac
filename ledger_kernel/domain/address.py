"""
Address resolution for the user-facing transfer entry point.

A caller names the transfer destination with an address token; an
AddressResolver maps it to a concrete account id. Resolution happens
before any ledger read or write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

from ledger_kernel.exceptions import UnknownAddressError


class AddressResolver(ABC):
    """Maps a destination token to an account id."""

    @abstractmethod
    def lookup(self, address: str) -> str:
        """
        Resolve ``address``.

        Raises:
            UnknownAddressError: If the address does not resolve.
        """
        ...


class IdentityAddressResolver(AddressResolver):
    """The address is the account id. Empty addresses do not resolve."""

    def lookup(self, address: str) -> str:
        if not address:
            raise UnknownAddressError(address)
        return address


class AddressBook(AddressResolver):
    """
    Resolves aliases from a fixed mapping, optionally falling back to
    treating unknown tokens as account ids.
    """

    def __init__(
        self,
        entries: Mapping[str, str],
        passthrough: bool = False,
    ):
        self._entries = dict(entries)
        self._passthrough = passthrough

    def lookup(self, address: str) -> str:
        account_id = self._entries.get(address)
        if account_id is not None:
            return account_id
        if self._passthrough and address:
            return address
        raise UnknownAddressError(address)

    def __len__(self) -> int:
        return len(self._entries)
