"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger must be able to tell "the asset does not exist" from
"the account is short of funds" without parsing message strings. Every error
therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (asset_id, account_id, amount, ...)

Example:
    try:
        ledger.transfer(asset_id, alice, bob, amount)
    except NoFundsError as e:
        api_response(code=e.code, account=e.account_id, requested=e.amount)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- AssetError
    |   +-- UnknownAssetError
    |   +-- AssetAlreadyExistsError
    |
    +-- BalanceError
    |   +-- BalanceOverflowError
    |   +-- IssuanceUnderflowError
    |   +-- NoFundsError
    |   +-- InvalidAmountError
    |
    +-- ImbalanceContractError
    |   +-- AssetMismatchError
    |   +-- PolarityError
    |   +-- ImbalanceConsumedError
    |   +-- ImbalanceCopyError
    |   +-- NoImbalanceScopeError
    |
    +-- AddressError
    |   +-- UnknownAddressError
    |
    +-- GenesisError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                   | When Raised
-----------|------------------------|--------------------------------------------
Asset      | UNKNOWN_ASSET          | No record exists for the asset id
           | ALREADY_EXISTS         | create_asset on an existing asset id
-----------|------------------------|--------------------------------------------
Balance    | OVERFLOW               | Issuance, balance or account count overflow
           | UNDERFLOW              | Issuance would drop below zero
           | NO_FUNDS               | Account balance smaller than the amount
           | INVALID_AMOUNT         | Negative, non-integer or > 2**256 - 1
-----------|------------------------|--------------------------------------------
Imbalance  | ASSET_MISMATCH         | Offset/merge of different assets
           | POLARITY_MISMATCH      | Offset of same polarity, merge of opposite
           | IMBALANCE_CONSUMED     | Imbalance used after being consumed
           | IMBALANCE_COPY         | Attempt to copy or pickle an imbalance
           | NO_IMBALANCE_SCOPE     | deposit/withdraw outside imbalance_scope()
-----------|------------------------|--------------------------------------------
Address    | UNKNOWN_ADDRESS        | Destination token does not resolve
-----------|------------------------|--------------------------------------------
Genesis    | GENESIS_ERROR          | Genesis load against a non-empty store

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Balance and asset errors are user-facing. They are raised by the
   validation pass BEFORE any write, so the store is unchanged.

2. Imbalance contract errors are programmer errors. They indicate misuse
   of Debt/Credit values and should not be caught to retry.
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Asset-related exceptions


class AssetError(LedgerKernelError):
    """Base exception for asset record errors."""

    code: str = "ASSET_ERROR"


class UnknownAssetError(AssetError):
    """No asset record exists for the given id."""

    code: str = "UNKNOWN_ASSET"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Unknown asset: {asset_id}")


class AssetAlreadyExistsError(AssetError):
    """An asset record already exists for the given id."""

    code: str = "ALREADY_EXISTS"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset already exists: {asset_id}")


# Balance-related exceptions


class BalanceError(LedgerKernelError):
    """Base exception for balance validation errors."""

    code: str = "BALANCE_ERROR"


class BalanceOverflowError(BalanceError):
    """
    Deposit would overflow total issuance, the account balance,
    or the asset's account count.
    """

    code: str = "OVERFLOW"

    def __init__(self, asset_id: str, account_id: str, amount: int):
        self.asset_id = asset_id
        self.account_id = account_id
        self.amount = amount
        super().__init__(
            f"Overflow depositing {amount} of {asset_id} to {account_id}"
        )


class IssuanceUnderflowError(BalanceError):
    """Withdrawal would take total issuance below zero."""

    code: str = "UNDERFLOW"

    def __init__(self, asset_id: str, account_id: str, amount: int):
        self.asset_id = asset_id
        self.account_id = account_id
        self.amount = amount
        super().__init__(
            f"Issuance underflow withdrawing {amount} of {asset_id} "
            f"from {account_id}"
        )


class NoFundsError(BalanceError):
    """Account balance is smaller than the requested amount."""

    code: str = "NO_FUNDS"

    def __init__(self, asset_id: str, account_id: str, amount: int):
        self.asset_id = asset_id
        self.account_id = account_id
        self.amount = amount
        super().__init__(
            f"Insufficient funds: {account_id} cannot withdraw {amount} of {asset_id}"
        )


class InvalidAmountError(BalanceError):
    """Amount is not an integer in [0, 2**256 - 1]."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


# Imbalance contract exceptions


class ImbalanceContractError(LedgerKernelError):
    """
    Base exception for misuse of Debt/Credit values.

    These are programming errors, not user-facing failures.
    """

    code: str = "IMBALANCE_CONTRACT_ERROR"


class AssetMismatchError(ImbalanceContractError):
    """Two imbalances of different assets were combined."""

    code: str = "ASSET_MISMATCH"

    def __init__(self, left_asset_id: str, right_asset_id: str):
        self.left_asset_id = left_asset_id
        self.right_asset_id = right_asset_id
        super().__init__(
            f"Cannot combine imbalances of {left_asset_id} and {right_asset_id}"
        )


class PolarityError(ImbalanceContractError):
    """Imbalances of the wrong polarity were combined."""

    code: str = "POLARITY_MISMATCH"

    def __init__(self, operation: str, left: str, right: str):
        self.operation = operation
        self.left = left
        self.right = right
        super().__init__(f"Cannot {operation} {left} with {right}")


class ImbalanceConsumedError(ImbalanceContractError):
    """An imbalance was used after it had already been consumed."""

    code: str = "IMBALANCE_CONSUMED"

    def __init__(self, kind: str, asset_id: str):
        self.kind = kind
        self.asset_id = asset_id
        super().__init__(f"{kind} of {asset_id} has already been consumed")


class ImbalanceCopyError(ImbalanceContractError, TypeError):
    """Imbalances are single-owner values and cannot be copied."""

    code: str = "IMBALANCE_COPY"

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"{kind} values cannot be copied or serialized")


class NoImbalanceScopeError(ImbalanceContractError):
    """An imbalance was requested with no open imbalance scope."""

    code: str = "NO_IMBALANCE_SCOPE"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"{operation} requires an open imbalance_scope()"
        )


# Address resolution exceptions


class AddressError(LedgerKernelError):
    """Base exception for destination address resolution errors."""

    code: str = "ADDRESS_ERROR"


class UnknownAddressError(AddressError):
    """Destination address does not resolve to an account."""

    code: str = "UNKNOWN_ADDRESS"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Cannot resolve address: {address}")


class GenesisError(LedgerKernelError):
    """Initial state could not be loaded."""

    code: str = "GENESIS_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Genesis failed: {reason}")
