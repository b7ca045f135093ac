"""
TransferEntryPoint -- the user-facing transfer call.

Responsibility:
    Accepts ``{asset_id, destination, amount}`` from an authenticated
    origin account, resolves ``destination`` through an AddressResolver
    and performs the transfer on the ledger.

Architecture position:
    Kernel > Services.  The outermost kernel seam; hosts (CLI, API) build a
    TransferRequest and call ``submit``.

Invariants enforced:
    ATOMIC_MUTATION -- address resolution happens before any ledger read or
        write; an unresolvable destination leaves the store untouched.

Failure modes:
    - UnknownAddressError if the destination does not resolve.
    - Everything AssetLedger.transfer raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from ledger_kernel.domain.address import AddressResolver, IdentityAddressResolver
from ledger_kernel.domain.amount import Amount
from ledger_kernel.domain.capabilities import Mutate
from ledger_kernel.exceptions import AddressError
from ledger_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.transfer_entrypoint")


@dataclass(frozen=True)
class TransferRequest:
    """The single parameter set of a user transfer."""

    asset_id: str
    destination: str
    amount: Amount


@dataclass(frozen=True)
class TransferReceipt:
    """What was actually done for a submitted request."""

    asset_id: str
    source: str
    dest: str
    amount: Amount
    correlation_id: str


class TransferEntryPoint:
    """Resolves the destination of a transfer request and executes it."""

    def __init__(self, ledger: Mutate, resolver: AddressResolver | None = None):
        self._ledger = ledger
        self._resolver = resolver or IdentityAddressResolver()

    def submit(self, origin: str, request: TransferRequest) -> TransferReceipt:
        correlation_id = str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=origin,
            operation="transfer_request",
        ):
            try:
                dest = self._resolver.lookup(request.destination)
            except AddressError as exc:
                logger.info(
                    "transfer_request_rejected",
                    extra={"error_code": exc.code, "destination": request.destination},
                )
                raise

            self._ledger.transfer(request.asset_id, origin, dest, request.amount)
            return TransferReceipt(
                asset_id=request.asset_id,
                source=origin,
                dest=dest,
                amount=request.amount,
                correlation_id=correlation_id,
            )
