"""
Module: ledger_kernel.db.types
Responsibility: Column types for ledger identifiers and 256-bit amounts.
Architecture position: Kernel > DB.  May be imported by models/ and services/.
    MUST NOT import from models/, services/ or selectors/.

Invariants enforced:
    NO_NEGATIVE_BALANCES -- AmountString refuses to bind anything that is
        not a valid amount, so an invalid value never reaches a row.
    Amounts are stored as base-10 strings; 2**256 - 1 does not fit a
        native integer column.

Failure modes:
    - InvalidAmountError when binding a negative, oversized or non-int value.
"""

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

from ledger_kernel.domain.amount import validate_amount

# len(str(2**256 - 1)) == 78
AMOUNT_DIGITS = 78


class AmountString(TypeDecorator):
    """
    Unsigned 256-bit integer stored as String(78).

    Guarantees:
        - process_bind_param: int -> str on INSERT/UPDATE (validated).
        - process_result_value: str -> int on SELECT.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = String(AMOUNT_DIGITS)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(validate_amount(value))
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return int(value)
        return None
